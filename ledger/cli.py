import cmd
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ledger.errors import LedgerError
from ledger.logging_utils import get_logger
from ledger.logic import LedgerEngine
from ledger.models import DuplicateFinding, LargeFinding, Transaction

LOGGER = get_logger(__name__)


def format_amount(value: Decimal) -> str:
    return f"{value:.6f}"


def format_rows(transactions: Iterable[Transaction]) -> str:
    return "".join(
        f"{t.id}|{format_amount(t.amount)}|{t.category}|{t.description}|{t.date}|"
        f"{'Income' if t.is_income else 'Expense'};"
        for t in transactions
    )


def _int_arg(arg: str) -> int:
    args = arg.split()
    if not args:
        raise ValueError("missing argument")
    return int(args[0])


class LedgerCLI(cmd.Cmd):
    """Line protocol: one command per line in, one ``|``-separated response per line out."""

    prompt = ""
    intro = None

    def __init__(self, engine: Optional[LedgerEngine] = None, stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        self.engine = engine if engine is not None else LedgerEngine()
        if stdin is not None:
            self.use_rawinput = False

    def _reply(self, text: str) -> None:
        self.stdout.write(text + "\n")
        self.stdout.flush()

    def _respond(self, usage: str, action: Callable[[], str]) -> None:
        try:
            self._reply(action())
        except LedgerError as e:
            self._reply(f"ERROR|{e}")
        except ValueError as e:
            LOGGER.warning("Bad arguments for %s: %s", usage.split()[0], e)
            self._reply(f"ERROR|Usage: {usage}")
        except ArithmeticError as e:
            LOGGER.error("Arithmetic failure in %s: %r", usage.split()[0], e)
            self._reply(f"ERROR|Arithmetic error in {usage.split()[0]}")

    # ===== CORE COMMANDS =====
    def do_ADD(self, arg):
        """ADD <amount> <category> <description> <date> <income|expense>"""
        def run():
            args = arg.split()
            if len(args) < 5:
                raise ValueError("expected 5 arguments")
            amount, category, description, t_date, t_type = args[:5]
            balance = self.engine.append(amount, category, description, t_date, t_type == "income")
            return f"SUCCESS|{format_amount(balance)}"
        self._respond(self.do_ADD.__doc__, run)

    def do_BALANCE(self, arg):
        """BALANCE"""
        self._respond(self.do_BALANCE.__doc__, lambda: format_amount(self.engine.current_balance()))

    def do_BALANCE_AT(self, arg):
        """BALANCE_AT <position>"""
        self._respond(
            self.do_BALANCE_AT.__doc__,
            lambda: format_amount(self.engine.balance_after(_int_arg(arg))),
        )

    def do_UNDO(self, arg):
        """UNDO"""
        self._respond(self.do_UNDO.__doc__, lambda: f"SUCCESS|{format_amount(self.engine.undo_last())}")

    def do_TRANSACTIONS(self, arg):
        """TRANSACTIONS"""
        self._respond(self.do_TRANSACTIONS.__doc__, lambda: format_rows(self.engine.list_all()))

    # ===== RANKINGS & REPORTS =====
    def do_TOP_EXPENSES(self, arg):
        """TOP_EXPENSES <k>"""
        def run():
            ranked = self.engine.top_expenses(_int_arg(arg))
            return "".join(f"{format_amount(amount)}|{description};" for amount, description in ranked)
        self._respond(self.do_TOP_EXPENSES.__doc__, run)

    def do_TOP_CATEGORIES(self, arg):
        """TOP_CATEGORIES <k>"""
        def run():
            ranked = self.engine.top_categories(_int_arg(arg))
            return "".join(f"{category}|{format_amount(total)};" for category, total in ranked)
        self._respond(self.do_TOP_CATEGORIES.__doc__, run)

    def do_MONTHLY_AVG(self, arg):
        """MONTHLY_AVG <months>"""
        self._respond(
            self.do_MONTHLY_AVG.__doc__,
            lambda: format_amount(self.engine.monthly_average(_int_arg(arg))),
        )

    def do_BUDGET(self, arg):
        """BUDGET <amount>"""
        def run():
            args = arg.split()
            if not args:
                raise ValueError("missing argument")
            report = self.engine.budget_analysis(args[0])
            head = f"{format_amount(report.budget)}|{format_amount(report.total_spending)}"
            if report.status == "OVER":
                cats = "".join(f"{c}:{format_amount(total)};" for c, total in report.overspend_categories)
                return f"{head}|OVER|{format_amount(report.delta)}|{cats}"
            return f"{head}|UNDER|{format_amount(report.delta)}"
        self._respond(self.do_BUDGET.__doc__, run)

    def do_FRAUD(self, arg):
        """FRAUD"""
        def run():
            parts = []
            for finding in self.engine.detect_fraud():
                if isinstance(finding, DuplicateFinding):
                    parts.append(
                        f"DUPLICATE|{format_amount(finding.amount)}|{finding.category}|"
                        f"{finding.date}|{finding.count};"
                    )
                elif isinstance(finding, LargeFinding):
                    parts.append(f"LARGE|{format_amount(finding.amount)}|{finding.category}|{finding.date};")
                else:
                    parts.append(f"SAFE|{finding.message}")
            return "".join(parts)
        self._respond(self.do_FRAUD.__doc__, run)

    def do_SUGGEST(self, arg):
        """SUGGEST [prefix]"""
        def run():
            args = arg.split()
            prefix = args[0] if args else ""
            return "".join(f"{c};" for c in self.engine.category_suggestions(prefix))
        self._respond(self.do_SUGGEST.__doc__, run)

    # ===== INDEX VIEWS =====
    def do_RECENT(self, arg):
        """RECENT"""
        self._respond(self.do_RECENT.__doc__, lambda: format_rows(self.engine.recent_transactions()))

    def do_MONTH(self, arg):
        """MONTH <YYYY-MM>"""
        def run():
            args = arg.split()
            if not args:
                raise ValueError("missing argument")
            return format_rows(self.engine.transactions_in_month(args[0]))
        self._respond(self.do_MONTH.__doc__, run)

    def do_RANGE(self, arg):
        """RANGE <from YYYY-MM-DD> <to YYYY-MM-DD>"""
        def run():
            args = arg.split()
            if len(args) < 2:
                raise ValueError("expected 2 arguments")
            return format_rows(self.engine.transactions_between(args[0], args[1]))
        self._respond(self.do_RANGE.__doc__, run)

    # ===== UTILITIES =====
    def do_EXIT(self, arg):
        """EXIT"""
        return True

    def do_help(self, arg):
        # help and ? are not part of the protocol
        self.default("help")

    def emptyline(self):
        pass

    def default(self, line):
        name = line.split()[0] if line.split() else line
        self._reply(f"ERROR|Unknown command: {name}")

    def cmdloop(self, intro=None):
        """Run until EXIT or end of input.

        Unlike ``cmd.Cmd.cmdloop`` only a real end of input stops the loop; a
        line reading ``EOF`` is an ordinary unknown command.
        """
        self.preloop()
        intro = intro if intro is not None else self.intro
        if intro:
            self._reply(str(intro))
        stop = None
        while not stop:
            if self.use_rawinput:
                try:
                    line = input(self.prompt)
                except EOFError:
                    break
            else:
                self.stdout.write(self.prompt)
                self.stdout.flush()
                line = self.stdin.readline()
                if not line:
                    break
                line = line.rstrip("\r\n")
            line = self.precmd(line)
            stop = self.onecmd(line)
            stop = self.postcmd(stop, line)
        self.postloop()

