"""
Command-line entry point: python -m skyhex

Configuration is validated when skyhex.config is first imported, so the
import itself is guarded here.
"""

import logging
import sys

from skyhex.exceptions import ConfigError


def main() -> int:
    try:
        from skyhex.app import run_development_server
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO, format='[%(levelname)s] %(name)s: %(message)s')
        logging.getLogger('skyhex').error(f'Configuration error: {e}')
        return 1

    run_development_server()
    return 0


if __name__ == '__main__':
    sys.exit(main())
