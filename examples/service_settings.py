"""Load nested service settings from the environment.

Run with, for example::

    APP__HOST=localhost APP__PORT=8080 APP__DB__HOST=db.local \
    APP__API_KEY=s3cr3t python examples/service_settings.py
"""

import logging
import sys
from typing import Optional

from pydantic import BaseModel

from envbind import BindError, EnvSettings, Secret


class Database(BaseModel):
    host: str
    port: int = 5432
    pool_size: Optional[int] = None


class ServiceSettings(EnvSettings):
    class Meta:
        prefix = "app"

    host: str
    port: int
    debug: bool = False
    api_key: Secret[str]
    db: Database


def main() -> int:
    logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(levelname)s - %(message)s")

    print("Expected variables:")
    for path, key in ServiceSettings.env_keys().items():
        print(f"  {key:<20} ({path})")

    try:
        settings = ServiceSettings.load()
    except BindError as e:
        print(e, file=sys.stderr)
        return 1

    print(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
