from __future__ import annotations

from .backend import get_client
from .config import LISTINGS_TABLE


def main() -> None:
    get_client().table(LISTINGS_TABLE).select("id").limit(1).execute()
    print("OK")


if __name__ == "__main__":
    main()
