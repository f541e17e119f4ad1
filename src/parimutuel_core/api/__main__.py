"""Allow running the API as: python -m parimutuel_core.api [--config path]."""

import argparse
import os

parser = argparse.ArgumentParser(description="Pari-mutuel markets API")
parser.add_argument("--config", default=None, help="Path to config.yaml")
args = parser.parse_args()
if args.config:
    os.environ["PARIMUTUEL_CONFIG"] = args.config

from parimutuel_core.api.runner import main  # noqa: E402  config is read at import

main()
