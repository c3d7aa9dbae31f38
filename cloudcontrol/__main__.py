"""Command line entrypoint.

    python -m cloudcontrol --create-config
    python -m cloudcontrol --add-remote nas.lan
    python -m cloudcontrol [--webadmin]
"""

from __future__ import annotations

import argparse
import sys

from cloudcontrol.config import Config, add_remote, write_config
from cloudcontrol.errors import CloudControlError
from cloudcontrol.logger import get_logger
from cloudcontrol.node import Node
from cloudcontrol.service import NodeService
from cloudcontrol.storage import generate_local_keypair

log = get_logger("CC.Main")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="cloudcontrol", description="Control the home cloud")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--create-config", action="store_true",
                       help="create config file and self key in the node home directory")
    group.add_argument("--add-remote", metavar="HOST", help="add remote to the config file")
    parser.add_argument("--webadmin", action="store_true",
                        help="allow users to connect to the web admin interface")
    parser.add_argument("--home", default=None, help="node home directory (default: $CLOUDCONTROL_HOME or cwd)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        if args.create_config:
            config = Config() if args.home is None else Config(home=args.home)
            write_config(config)
            generate_local_keypair(config.self_key_dir)
            return 0

        if args.add_remote:
            add_remote(args.add_remote, home=args.home)
            return 0

        node = Node.load(args.home, webadmin=args.webadmin)
    except CloudControlError as e:
        log.error(str(e))
        return 1

    service = NodeService(node)
    service.start()
    try:
        service.wait()
    except KeyboardInterrupt:
        log.info("[MAIN] interrupted")
    finally:
        service.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
