"""Allow `python -m cordlink` to launch the gateway client."""

import asyncio
import sys

from cordlink.main import main


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
