from snackbase.client import SnackBaseClient


async def login(
    client: SnackBaseClient,
    email: str,
    password: str,
    account: str | None = None,
) -> dict:
    data = await client.auth.login(email, password, account=account)
    # tokens stay inside the client
    return {
        "user": data.get("user"),
        "account": data.get("account"),
        "expires_at": data.get("expiresAt"),
    }


async def logout(client: SnackBaseClient) -> dict:
    await client.auth.logout()
    return {"ok": True}


async def whoami(client: SnackBaseClient) -> dict:
    return await client.auth.me()


async def auth_status(client: SnackBaseClient) -> dict:
    state = client.tokens.get()
    return {
        "authenticated": bool(state.access_token),
        "can_refresh": bool(state.refresh_token),
        "expires_at": state.expires_at.isoformat() if state.expires_at else None,
        "api_key_configured": bool(client.config.api_key),
    }
