from typing import Any

from snackbase.client import SnackBaseClient

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


async def api_request(
    client: SnackBaseClient,
    method: str,
    path: str,
    params: dict[str, Any] | None = None,
    body: Any = None,
) -> dict:
    method = method.upper()
    if method not in METHODS:
        raise ValueError(f"Unsupported method {method!r}; use one of {', '.join(METHODS)}")
    if not path.startswith("/"):
        raise ValueError("path must start with '/'")

    options: dict[str, Any] = {"params": params}
    if method in ("POST", "PUT", "PATCH"):
        options["body"] = body
    response = await client.http.request(method, path, **options)
    return {"status": response.status, "data": response.data}
