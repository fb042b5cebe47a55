"""Post a raw JSON callback to a running relay, as the gateway would.

Useful for manual checks of both callback routes and of the internal
service wiring.
"""

import argparse
import asyncio
import json
from pathlib import Path

import httpx


async def send(base_url: str, environment: str | None, payload: dict) -> httpx.Response:
    """Post one callback and return the relay's acknowledgement response."""

    prefix = f"/{environment}" if environment else ""
    async with httpx.AsyncClient(timeout=20.0) as client:
        return await client.post(f"{base_url}{prefix}/MixByYasPushCallback", json=payload)


def main() -> None:
    """Parse CLI args and send one JSON callback."""

    parser = argparse.ArgumentParser(description="Send a gateway-style callback to the relay.")
    parser.add_argument("--base-url", default="http://localhost:3000")
    parser.add_argument("--environment", default=None, help="Route prefix, e.g. prod")
    parser.add_argument("--json", dest="json_inline", default=None, help="Inline JSON payload")
    parser.add_argument("--file", dest="json_file", default=None, help="Path to JSON file")
    args = parser.parse_args()

    if bool(args.json_inline) == bool(args.json_file):
        raise SystemExit("Provide exactly one of --json or --file")

    if args.json_inline:
        payload = json.loads(args.json_inline)
    else:
        payload = json.loads(Path(args.json_file).read_text())

    resp = asyncio.run(send(args.base_url, args.environment, payload))
    print(f"status={resp.status_code}")
    print(resp.text)


if __name__ == "__main__":
    main()
