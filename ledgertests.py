import io
import unittest
from decimal import Decimal, Overflow
from unittest.mock import patch

from ledger.analysis import detect_fraud, find_large_expenses, monthly_average, top_expenses
from ledger.cli import LedgerCLI
from ledger.config import LedgerSettings
from ledger.errors import EmptyHistory, InvalidAmount, InvalidIndex, LedgerError
from ledger.indexes import RecencyWindow, TemporalIndex, UndoHistory
from ledger.logic import LedgerEngine, to_amount
from ledger.models import DuplicateFinding, LargeFinding, SafeFinding, Transaction


def make_engine(**overrides):
    return LedgerEngine(LedgerSettings(**overrides))


def signed_sum(engine):
    return sum((t.signed_amount for t in engine.list_all()), Decimal("0"))


class TestTransactionStore(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()

    def test_append_assigns_increasing_ids(self):
        """Ids start at 1, grow by one and follow insertion order"""
        self.engine.append(100, "Salary", "pay", "2024-01-01", True)
        self.engine.append(20, "Food", "lunch", "2024-01-02")
        self.engine.append(5, "Food", "coffee", "2024-01-02")

        ids = [t.id for t in self.engine.list_all()]
        self.assertEqual(ids, [1, 2, 3])
        self.assertEqual(len(self.engine), 3)

    def test_append_returns_new_balance(self):
        self.assertEqual(self.engine.append(1000, "Salary", "pay", "2024-01-01", True), Decimal("1000"))
        self.assertEqual(self.engine.append("200", "Food", "groceries", "2024-01-05"), Decimal("800"))

    def test_ids_never_reused_after_undo(self):
        self.engine.append(10, "Food", "a", "2024-01-01")
        self.engine.append(20, "Food", "b", "2024-01-01")
        self.engine.undo_last()
        t = self.engine.add_transaction(30, "Food", "c", "2024-01-01")
        self.assertEqual(t.id, 3)

    def test_list_all_is_read_only_snapshot(self):
        self.engine.append(10, "Food", "a", "2024-01-01")
        snapshot = self.engine.list_all()
        self.assertIsInstance(snapshot, tuple)
        self.engine.append(20, "Food", "b", "2024-01-01")
        self.assertEqual(len(snapshot), 1)

    def test_rejects_invalid_amounts(self):
        """Negative, NaN, infinite and non-numeric amounts leave the ledger untouched"""
        for bad in (-1, "-0.01", float("nan"), float("inf"), "Infinity", "abc", None, True):
            with self.assertRaises(InvalidAmount):
                self.engine.append(bad, "Food", "x", "2024-01-01")
        self.assertEqual(len(self.engine), 0)
        self.assertEqual(self.engine.current_balance(), Decimal("0"))
        self.assertEqual(self.engine.balance_after(0), Decimal("0"))
        self.assertEqual(len(self.engine.undo_history), 0)
        self.assertEqual(self.engine.add_transaction(1, "Food", "x", "2024-01-01").id, 1)

    def test_zero_amount_is_allowed(self):
        self.engine.append(0, "Misc", "free", "2024-01-01")
        self.assertEqual(self.engine.category_totals(), {"Misc": Decimal("0")})

    def test_to_amount(self):
        self.assertEqual(to_amount("12.50"), Decimal("12.50"))
        self.assertEqual(to_amount(3), Decimal("3"))
        self.assertEqual(to_amount(0.1), Decimal("0.1"))
        with self.assertRaises(InvalidAmount):
            to_amount("sNaN")
        self.assertEqual(to_amount("999999999999999.999999"), Decimal("999999999999999.999999"))

    def test_rejects_amounts_beyond_exact_range(self):
        """Huge or over-precise amounts are refused before any index changes"""
        self.engine.append(5, "Food", "lunch", "2024-01-01")
        too_big_or_precise = (
            "1e1000000",
            Decimal("1e1000000"),
            "1000000000000000",
            "1.0000000000000000000000000001",
            "0.0000001",
        )
        for bad in too_big_or_precise:
            with self.assertRaises(InvalidAmount):
                self.engine.append(bad, "Food", "huge", "2024-01-02")
        self.assertEqual(len(self.engine), 1)
        self.assertEqual(self.engine.current_balance(), Decimal("-5"))
        self.assertEqual(len(self.engine.balances), 2)
        self.assertEqual(self.engine.category_totals(), {"Food": Decimal("5")})
        self.assertEqual([t.id for t in self.engine.recent_transactions()], [1])
        self.assertEqual(self.engine.transactions_in_month("2024-01")[0].id, 1)
        self.assertEqual(len(self.engine.undo_history), 1)
        self.assertEqual(self.engine.add_transaction(1, "Food", "x", "2024-01-03").id, 2)

    def test_budget_rejects_amounts_beyond_exact_range(self):
        self.engine.append(5, "Food", "lunch", "2024-01-01")
        for bad in ("1e1000000", "1.0000000000000000000000000001"):
            with self.assertRaises(InvalidAmount):
                self.engine.budget_analysis(bad)


class TestBalance(unittest.TestCase):
    def test_balance_is_signed_sum(self):
        engine = make_engine()
        entries = [
            (1000, True), (250, False), (12.75, False), (300, True), (0.05, False), (99.99, False),
        ]
        for amount, income in entries:
            engine.append(amount, "C", "d", "2024-02-01", income)
            self.assertEqual(engine.current_balance(), signed_sum(engine))
        self.assertEqual(engine.current_balance(), Decimal("937.21"))

    def test_balance_after_prefix(self):
        engine = make_engine()
        engine.append(100, "Salary", "pay", "2024-01-01", True)
        engine.append(30, "Food", "lunch", "2024-01-02")
        engine.append(50, "Gift", "present", "2024-01-03", True)

        self.assertEqual(engine.balance_after(0), Decimal("0"))
        self.assertEqual(engine.balance_after(1), Decimal("100"))
        self.assertEqual(engine.balance_after(2), Decimal("70"))
        self.assertEqual(engine.balance_after(3), Decimal("120"))
        with self.assertRaises(InvalidIndex):
            engine.balance_after(4)
        with self.assertRaises(InvalidIndex):
            engine.balance_after(-1)

    def test_balance_history_shrinks_on_undo(self):
        engine = make_engine()
        engine.append(100, "Salary", "pay", "2024-01-01", True)
        engine.append(30, "Food", "lunch", "2024-01-02")
        engine.undo_last()
        self.assertEqual(len(engine.balances), len(engine) + 1)
        with self.assertRaises(InvalidIndex):
            engine.balance_after(2)


class TestCategories(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()
        self.engine.append(2000, "Salary", "pay", "2024-01-01", True)
        self.engine.append(200, "Food", "groceries", "2024-01-05")
        self.engine.append(50, "Food", "lunch", "2024-01-06")
        self.engine.append(120, "Fuel", "petrol", "2024-01-07")
        self.engine.append(250, "Rent", "room", "2024-01-08")

    def test_totals_only_count_debits(self):
        self.assertEqual(
            self.engine.category_totals(),
            {"Food": Decimal("250"), "Fuel": Decimal("120"), "Rent": Decimal("250")},
        )
        self.assertEqual(self.engine.category_counts(), {"Food": 2, "Fuel": 1, "Rent": 1})
        self.assertNotIn("Salary", self.engine.category_totals())

    def test_totals_sum_to_total_expense(self):
        expenses = sum((t.amount for t in self.engine.list_all() if not t.is_income), Decimal("0"))
        self.assertEqual(sum(self.engine.category_totals().values()), expenses)

    def test_undo_restores_category_totals(self):
        before = self.engine.category_totals()
        self.engine.append(75, "Food", "dinner", "2024-01-09")
        self.assertEqual(self.engine.categories.total("Food"), Decimal("325"))
        self.engine.undo_last()
        self.assertEqual(self.engine.category_totals(), before)
        self.assertEqual(self.engine.categories.count("Food"), 2)

    def test_undo_removes_emptied_category(self):
        self.engine.append(10, "Toys", "kite", "2024-01-09")
        self.engine.undo_last()
        self.assertNotIn("Toys", self.engine.category_totals())
        self.assertNotIn("Toys", self.engine.category_counts())

    def test_top_categories_tie_break_by_name(self):
        """Equal totals are ordered by name ascending"""
        self.assertEqual(
            self.engine.top_categories(3),
            [("Food", Decimal("250")), ("Rent", Decimal("250")), ("Fuel", Decimal("120"))],
        )
        self.assertEqual(self.engine.top_categories(1), [("Food", Decimal("250"))])
        self.assertEqual(len(self.engine.top_categories(10)), 3)

    def test_top_categories_rejects_non_positive_k(self):
        with self.assertRaises(InvalidIndex):
            self.engine.top_categories(0)

    def test_budget_over(self):
        report = self.engine.budget_analysis(500)
        self.assertEqual(report.status, "OVER")
        self.assertEqual(report.total_spending, Decimal("620"))
        self.assertEqual(report.delta, Decimal("120"))
        self.assertEqual(
            report.overspend_categories,
            [("Food", Decimal("250")), ("Rent", Decimal("250")), ("Fuel", Decimal("120"))],
        )

    def test_budget_under_and_exact(self):
        report = self.engine.budget_analysis("1000")
        self.assertEqual(report.status, "UNDER")
        self.assertEqual(report.delta, Decimal("380"))
        self.assertEqual(report.overspend_categories, [])

        # spending equal to the budget is not over it
        report = self.engine.budget_analysis(620)
        self.assertEqual(report.status, "UNDER")
        self.assertEqual(report.delta, Decimal("0"))

    def test_budget_rejects_invalid_amount(self):
        with self.assertRaises(InvalidAmount):
            self.engine.budget_analysis(-5)


class TestTemporalIndex(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()
        self.engine.append(100, "Food", "a", "2024-01-15")
        self.engine.append(300, "Rent", "b", "2024-02-01")
        self.engine.append(50, "Food", "c", "2024-01-03")
        self.engine.append(1000, "Salary", "d", "2024-03-01", True)
        self.engine.append(200, "Fuel", "e", "2024-03-10")

    def test_monthly_average_all_months(self):
        # Jan 150, Feb 300, Mar 200
        self.assertEqual(self.engine.monthly_average(12), Decimal("650") / 3)

    def test_monthly_average_most_recent_months(self):
        self.assertEqual(self.engine.monthly_average(2), Decimal("250"))
        self.assertEqual(self.engine.monthly_average(1), Decimal("200"))

    def test_monthly_average_ignores_income_only_months(self):
        engine = make_engine()
        engine.append(100, "Food", "a", "2024-01-15")
        engine.append(1000, "Salary", "d", "2024-05-01", True)
        self.assertEqual(engine.monthly_average(1), Decimal("100"))

    def test_monthly_average_without_expenses(self):
        engine = make_engine()
        self.assertEqual(engine.monthly_average(3), Decimal("0"))
        engine.append(1000, "Salary", "d", "2024-05-01", True)
        self.assertEqual(engine.monthly_average(3), Decimal("0"))
        with self.assertRaises(InvalidIndex):
            engine.monthly_average(0)

    def test_transactions_in_month(self):
        ids = [t.id for t in self.engine.transactions_in_month("2024-01")]
        self.assertEqual(ids, [1, 3])
        self.assertEqual(self.engine.transactions_in_month("2023-12"), [])

    def test_transactions_between_ordered_by_date_then_id(self):
        found = self.engine.transactions_between("2024-01-01", "2024-02-28")
        self.assertEqual([t.id for t in found], [3, 1, 2])
        self.assertEqual([t.id for t in self.engine.transactions_between("2024-03-01", "2024-03-01")], [4])

    def test_undo_reconciles_date_and_month_indexes(self):
        self.engine.undo_last()
        self.assertEqual(self.engine.transactions_in_month("2024-03")[0].id, 4)
        self.engine.undo_last()
        self.assertEqual(self.engine.transactions_in_month("2024-03"), [])
        self.assertNotIn("2024-03", self.engine.temporal.months())
        stored = {t.id for t in self.engine.list_all()}
        self.assertEqual({i for _, i in self.engine.temporal.dates()}, stored)

    def test_category_suggestions(self):
        self.engine.append(5, "Fun", "f", "2024-03-11")
        self.engine.append(5, "fuel", "g", "2024-03-11")
        self.assertEqual(self.engine.category_suggestions("Fu"), ["Fuel", "Fun"])
        self.assertEqual(self.engine.category_suggestions("S"), ["Salary"])
        self.assertEqual(self.engine.category_suggestions("X"), [])
        self.assertEqual(
            self.engine.category_suggestions(""),
            ["Food", "Fuel", "Fun", "Rent", "Salary", "fuel"],
        )

    def test_month_key_is_positional(self):
        index = TemporalIndex()
        index.add(Transaction(1, Decimal("1"), "c", "d", "2024-07-31"))
        index.add(Transaction(2, Decimal("1"), "c", "d", "2024-07-01"))
        self.assertEqual(index.ids_in_month("2024-07"), [1, 2])
        self.assertEqual(index.ids_between("2024-07-01", "2024-07-31"), [2, 1])


class TestRecencyAndUndo(unittest.TestCase):
    def test_recency_window_holds_last_ten(self):
        engine = make_engine()
        for i in range(1, 16):
            engine.append(i, "C", f"t{i}", "2024-01-01")
            expected = [t.id for t in engine.list_all()][-10:]
            self.assertEqual([t.id for t in engine.recent_transactions()], expected)
        self.assertEqual(len(engine.recent_transactions()), 10)

    def test_recency_window_refills_on_undo(self):
        engine = make_engine()
        for i in range(1, 13):
            engine.append(i, "C", f"t{i}", "2024-01-01")
        engine.undo_last()
        engine.undo_last()
        self.assertEqual([t.id for t in engine.recent_transactions()], list(range(1, 11)))
        engine.undo_last()
        self.assertEqual([t.id for t in engine.recent_transactions()], list(range(1, 10)))

    def test_undo_history_is_bounded(self):
        engine = make_engine()
        for i in range(1, 8):
            engine.append(i, "C", f"t{i}", "2024-01-01")
        for _ in range(5):
            engine.undo_last()
        self.assertEqual(len(engine), 2)
        with self.assertRaises(EmptyHistory):
            engine.undo_last()
        self.assertEqual(len(engine), 2)
        self.assertEqual(engine.current_balance(), Decimal("-3"))

    def test_undo_on_empty_ledger(self):
        engine = make_engine()
        with self.assertRaises(EmptyHistory) as ctx:
            engine.undo_last()
        self.assertEqual(str(ctx.exception), "No transactions to undo")
        self.assertIsInstance(ctx.exception, LedgerError)

    def test_round_trip_append_then_undo_all(self):
        engine = make_engine()
        for i in range(5):
            engine.append(Decimal("10.10") * (i + 1), f"C{i % 2}", "x", f"2024-0{i + 1}-01", i == 0)
        for _ in range(5):
            engine.undo_last()
        self.assertEqual(engine.current_balance(), Decimal("0"))
        self.assertEqual(engine.category_totals(), {})
        self.assertEqual(len(engine), 0)
        self.assertEqual(engine.recent_transactions(), [])
        self.assertEqual(engine.temporal.months(), [])

    def test_custom_capacities(self):
        engine = make_engine(recent_limit=3, undo_limit=2)
        for i in range(1, 6):
            engine.append(i, "C", "x", "2024-01-01")
        self.assertEqual([t.id for t in engine.recent_transactions()], [3, 4, 5])
        self.assertEqual(engine.undo_last_transaction().id, 5)
        self.assertEqual([t.id for t in engine.recent_transactions()], [2, 3, 4])
        engine.undo_last()
        with self.assertRaises(EmptyHistory):
            engine.undo_last()

    def test_undo_history_evicts_oldest(self):
        history = UndoHistory(2)
        for i in range(1, 4):
            history.push(Transaction(i, Decimal("1"), "c", "d", "2024-01-01"))
        self.assertEqual(history.pop().id, 3)
        self.assertEqual(history.pop().id, 2)
        with self.assertRaises(EmptyHistory):
            history.pop()

    def test_recency_window_remove_only_drops_newest(self):
        window = RecencyWindow(2)
        first = Transaction(1, Decimal("1"), "c", "d", "2024-01-01")
        second = Transaction(2, Decimal("1"), "c", "d", "2024-01-01")
        window.add(first)
        window.add(second)
        window.remove(first)
        self.assertEqual([t.id for t in window], [1, 2])


class TestRanking(unittest.TestCase):
    def test_top_expenses_sorted_and_limited(self):
        engine = make_engine()
        engine.append(5000, "Salary", "pay", "2024-01-01", True)
        engine.append(40, "Food", "lunch", "2024-01-02")
        engine.append(300, "Rent", "room", "2024-01-03")
        engine.append(40, "Food", "brunch", "2024-01-04")
        engine.append(15, "Fuel", "petrol", "2024-01-05")

        self.assertEqual(
            engine.top_expenses(3),
            [(Decimal("300"), "room"), (Decimal("40"), "brunch"), (Decimal("40"), "lunch")],
        )
        everything = engine.top_expenses(100)
        self.assertEqual(len(everything), 4)
        amounts = [a for a, _ in everything]
        self.assertEqual(amounts, sorted(amounts, reverse=True))
        debits = {(t.amount, t.description) for t in engine.list_all() if not t.is_income}
        self.assertTrue(set(everything) <= debits)

    def test_top_expenses_empty_and_invalid_k(self):
        self.assertEqual(top_expenses([], 3), [])
        with self.assertRaises(InvalidIndex):
            top_expenses([], 0)

    def test_monthly_average_helper(self):
        totals = {"2024-01": Decimal("10"), "2023-12": Decimal("30"), "2024-02": Decimal("20")}
        self.assertEqual(monthly_average(totals, 2), Decimal("15"))
        self.assertEqual(monthly_average(totals, 5), Decimal("20"))


class TestFraud(unittest.TestCase):
    def test_duplicate_pattern(self):
        engine = make_engine()
        for _ in range(3):
            engine.append(10, "Fuel", "petrol", "2024-02-02")
        findings = engine.detect_fraud()
        self.assertEqual(findings, [DuplicateFinding(Decimal("10"), "Fuel", "2024-02-02", 3)])

    def test_duplicates_include_income(self):
        engine = make_engine()
        engine.append(500, "Salary", "pay", "2024-02-01", True)
        engine.append(500, "Salary", "pay", "2024-02-01", True)
        findings = engine.detect_fraud()
        self.assertEqual(len(findings), 1)
        self.assertEqual(findings[0].count, 2)

    def test_large_expense_uses_upper_median(self):
        txs = [
            Transaction(i, Decimal(a), "C", "d", f"2024-01-0{i}")
            for i, a in enumerate(["10", "20", "30", "91"], start=1)
        ]
        # upper median of [10, 20, 30, 91] is 30, threshold 90
        self.assertEqual(find_large_expenses(txs), [LargeFinding(Decimal("91"), "C", "2024-01-04")])
        self.assertEqual(find_large_expenses(txs, Decimal("4")), [])

    def test_threshold_is_strict(self):
        txs = [
            Transaction(1, Decimal("10"), "C", "d", "2024-01-01"),
            Transaction(2, Decimal("10"), "D", "d", "2024-01-02"),
            Transaction(3, Decimal("30"), "E", "d", "2024-01-03"),
        ]
        self.assertEqual(detect_fraud(txs), [SafeFinding()])

    def test_income_is_not_an_outlier(self):
        engine = make_engine()
        engine.append(10, "Food", "a", "2024-01-01")
        engine.append(10000, "Salary", "pay", "2024-01-02", True)
        self.assertEqual(engine.detect_fraud(), [SafeFinding()])

    def test_safe_on_empty_ledger(self):
        self.assertEqual(make_engine().detect_fraud(), [SafeFinding()])


class TestScenario(unittest.TestCase):
    def test_income_expense_undo_scenario(self):
        engine = make_engine()
        self.assertEqual(engine.append(1000, "Salary", "pay", "2024-01-01", True), Decimal("1000"))
        self.assertEqual(engine.append(200, "Food", "groceries", "2024-01-05"), Decimal("800"))
        self.assertEqual(engine.category_totals()["Food"], Decimal("200"))
        self.assertEqual(engine.undo_last(), Decimal("1000"))
        self.assertNotIn("Food", engine.category_totals())
        self.assertEqual(engine.detect_fraud(), [SafeFinding()])


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.out = io.StringIO()
        self.cli = LedgerCLI(make_engine(), stdin=io.StringIO(), stdout=self.out)

    def run_cmd(self, line):
        self.out.seek(0)
        self.out.truncate()
        stop = self.cli.onecmd(line)
        return self.out.getvalue().rstrip("\n"), stop

    def send(self, line):
        return self.run_cmd(line)[0]

    def test_add_balance_undo(self):
        self.assertEqual(self.send("ADD 1000 Salary pay 2024-01-01 income"), "SUCCESS|1000.000000")
        self.assertEqual(self.send("ADD 200 Food groceries 2024-01-05 expense"), "SUCCESS|800.000000")
        self.assertEqual(self.send("BALANCE"), "800.000000")
        self.assertEqual(self.send("BALANCE_AT 1"), "1000.000000")
        self.assertEqual(self.send("UNDO"), "SUCCESS|1000.000000")
        self.assertEqual(self.send("FRAUD"), "SAFE|No suspicious activity detected")
        self.assertEqual(self.send("UNDO"), "SUCCESS|0.000000")
        self.assertEqual(self.send("UNDO"), "ERROR|No transactions to undo")

    def test_transactions_listing(self):
        self.send("ADD 1000 Salary pay 2024-01-01 income")
        self.send("ADD 12.5 Food lunch 2024-01-02 card")
        self.assertEqual(
            self.send("TRANSACTIONS"),
            "1|1000.000000|Salary|pay|2024-01-01|Income;2|12.500000|Food|lunch|2024-01-02|Expense;",
        )
        self.assertEqual(self.send("RECENT"), self.send("TRANSACTIONS"))
        self.assertEqual(self.send("MONTH 2024-01"), self.send("TRANSACTIONS"))
        self.assertEqual(self.send("RANGE 2024-01-02 2024-01-31"), "2|12.500000|Food|lunch|2024-01-02|Expense;")

    def test_rankings_and_budget(self):
        self.send("ADD 300 Rent room 2024-01-01 expense")
        self.send("ADD 40 Food lunch 2024-01-02 expense")
        self.send("ADD 60 Food dinner 2024-02-02 expense")
        self.assertEqual(self.send("TOP_EXPENSES 2"), "300.000000|room;60.000000|dinner;")
        self.assertEqual(self.send("TOP_CATEGORIES 5"), "Rent|300.000000;Food|100.000000;")
        self.assertEqual(self.send("MONTHLY_AVG 2"), "200.000000")
        self.assertEqual(
            self.send("BUDGET 250"),
            "250.000000|400.000000|OVER|150.000000|Rent:300.000000;Food:100.000000;",
        )
        self.assertEqual(self.send("BUDGET 500"), "500.000000|400.000000|UNDER|100.000000")
        self.assertEqual(self.send("SUGGEST F"), "Food;")
        self.assertEqual(self.send("SUGGEST"), "Food;Rent;")

    def test_fraud_output(self):
        for _ in range(3):
            self.send("ADD 10 Fuel petrol 2024-02-02 expense")
        self.send("ADD 100 Fuel truck 2024-02-03 expense")
        self.assertEqual(
            self.send("FRAUD"),
            "DUPLICATE|10.000000|Fuel|2024-02-02|3;LARGE|100.000000|Fuel|2024-02-03;",
        )

    def test_errors_are_responses(self):
        self.assertEqual(self.send("ADD -5 Food x 2024-01-01 expense"), "ERROR|Invalid amount: '-5'")
        self.assertTrue(self.send("ADD 5 Food").startswith("ERROR|Usage: ADD"))
        self.assertEqual(self.send("TOP_EXPENSES abc"), "ERROR|Usage: TOP_EXPENSES <k>")
        self.assertEqual(self.send("TOP_EXPENSES 0"), "ERROR|k must be positive, got 0")
        self.assertEqual(self.send("FOO 1"), "ERROR|Unknown command: FOO")
        self.assertEqual(self.send("TRANSACTIONS"), "")

    def test_out_of_range_amounts_are_responses(self):
        """Oversized or over-precise input answers ERROR and leaves the ledger as it was"""
        self.send("ADD 5 Food lunch 2024-01-01 expense")
        self.assertEqual(
            self.send("ADD 1e1000000 Food huge 2024-01-02 expense"),
            "ERROR|Amount too large: '1e1000000'",
        )
        self.assertEqual(
            self.send("ADD 1.0000000000000000000000000001 Food tiny 2024-01-02 expense"),
            "ERROR|Amount has more than 6 decimal places: '1.0000000000000000000000000001'",
        )
        self.assertEqual(self.send("BUDGET 1e1000000"), "ERROR|Amount too large: '1e1000000'")
        self.assertTrue(self.send("BUDGET 1.0000000000000000000000000001").startswith("ERROR|"))
        self.assertEqual(self.send("TRANSACTIONS"), "1|5.000000|Food|lunch|2024-01-01|Expense;")
        self.assertEqual(self.send("BALANCE"), "-5.000000")
        self.assertEqual(self.send("BALANCE_AT 1"), "-5.000000")
        self.assertEqual(self.send("TOP_CATEGORIES 3"), "Food|5.000000;")

    def test_arithmetic_failure_is_a_response(self):
        with patch.object(self.cli.engine, "current_balance", side_effect=Overflow):
            self.assertEqual(self.run_cmd("BALANCE"), ("ERROR|Arithmetic error in BALANCE", None))

    def test_help_and_literal_eof_are_unknown_commands(self):
        self.assertEqual(self.run_cmd("help"), ("ERROR|Unknown command: help", None))
        self.assertEqual(self.run_cmd("help ADD"), ("ERROR|Unknown command: help", None))
        self.assertEqual(self.run_cmd("?"), ("ERROR|Unknown command: help", None))
        self.assertEqual(self.run_cmd("EOF"), ("ERROR|Unknown command: EOF", None))

    def test_cmdloop_keeps_going_after_eof_line(self):
        script = io.StringIO(
            "help\n"
            "EOF\n"
            "ADD 7 Food x 2024-01-01 expense\n"
            "BALANCE"
        )
        out = io.StringIO()
        LedgerCLI(make_engine(), stdin=script, stdout=out).cmdloop()
        self.assertEqual(
            out.getvalue().splitlines(),
            ["ERROR|Unknown command: help", "ERROR|Unknown command: EOF", "SUCCESS|-7.000000", "-7.000000"],
        )

    def test_exit_and_blank_lines(self):
        self.send("ADD 5 Food x 2024-01-01 expense")
        self.assertEqual(self.run_cmd(""), ("", None))
        self.assertEqual(len(self.cli.engine), 1)
        self.assertEqual(self.run_cmd("EXIT"), ("", True))

    def test_cmdloop_session(self):
        script = io.StringIO(
            "ADD 1000 Salary pay 2024-01-01 income\n"
            "ADD 200 Food groceries 2024-01-05 expense\n"
            "\n"
            "BALANCE\n"
            "EXIT\n"
            "BALANCE\n"
        )
        out = io.StringIO()
        LedgerCLI(make_engine(), stdin=script, stdout=out).cmdloop()
        self.assertEqual(out.getvalue().splitlines(), ["SUCCESS|1000.000000", "SUCCESS|800.000000", "800.000000"])


if __name__ == "__main__":
    unittest.main()
