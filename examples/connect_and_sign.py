import asyncio
import base64
import sys

from wallet_session_sdk import ConnectionStatus, Settings, WalletSessionManager


def on_change(state):
    print(f"[{state.provider}] {state.status.value}")
    if state.last_error:
        print(f"  {state.last_error.message}")


async def main(provider: str, unsigned_tx_b64: str | None = None) -> None:
    manager = WalletSessionManager(Settings.from_env())
    manager.subscribe(provider, on_change)

    await manager.connect(provider, timeout=120)
    print("Paste the redirect URL the wallet opened:")
    manager.handle_callback_url(input().strip())
    state = await manager.wait_for_settle(provider, timeout=5)
    if state.status is not ConnectionStatus.CONNECTED:
        manager.close()
        return

    print(f"Connected as {state.wallet_address}")
    if unsigned_tx_b64:
        await manager.request_signature(provider, base64.b64decode(unsigned_tx_b64), timeout=120)
        print("Paste the redirect URL after signing:")
        manager.handle_callback_url(input().strip())
        state = await manager.wait_for_settle(provider, timeout=5)
        print(f"Signature: {state.last_signature}")

    manager.close()


if __name__ == "__main__":
    asyncio.run(main(*sys.argv[1:3]))
