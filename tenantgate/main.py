"""tenantgate entrypoint."""

import uvicorn


def cli() -> None:
    """Serve the admin and content API."""
    uvicorn.run("tenantgate.web.app:create_app", factory=True, host="0.0.0.0", port=1337)  # nosec B104


if __name__ == "__main__":
    cli()
