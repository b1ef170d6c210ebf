import sys

from ledger.cli import LedgerCLI
from ledger.config import get_settings
from ledger.logging_utils import configure_logging, get_logger
from ledger.logic import LedgerEngine


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    get_logger(__name__).info(
        "Starting ledger session (recent=%d, undo=%d)", settings.recent_limit, settings.undo_limit
    )

    # One engine per session; it lives as long as the command loop.
    cli = LedgerCLI(LedgerEngine(settings), stdin=sys.stdin, stdout=sys.stdout)
    if sys.stdin.isatty():
        cli.use_rawinput = True
        cli.prompt = "(ledger) "
        cli.intro = "Ledger shell. EXIT to quit."
    cli.cmdloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
