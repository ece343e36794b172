from decimal import Decimal

from registry_report.formatting import format_category_totals, format_currency_summary, format_units
from registry_report.summary import CategoryTotal, group_by_currency


def test_format_units():
    assert format_units(Decimal("4.00")) == "4"
    assert format_units(Decimal("1.81")) == "1.81"
    assert format_units(Decimal("0.5")) == "0.50"


def test_format_currency_summary(scenario_event):
    groups = group_by_currency(scenario_event.transactions, scenario_event)

    lines = format_currency_summary(groups).splitlines()

    assert lines[0].split(" | ")[0].strip() == "Currency"
    assert [cell.strip() for cell in lines[2].split(" | ")] == ["USD", "Card", "1.81", "$5.00"]
    assert [cell.strip() for cell in lines[3].split(" | ")] == ["USD", "Cash", "2.19", "$6.00"]
    assert [cell.strip() for cell in lines[4].split(" | ")] == ["USD", "Total", "", "$11.00"]


def test_format_category_totals_adds_grand_total():
    rows = [CategoryTotal("Drinks", Decimal("1200.5")), CategoryTotal("No Category", Decimal("3"))]

    lines = format_category_totals(rows, "$").splitlines()

    assert "$1,200.50" in lines[2]
    assert lines[-1].startswith("Total")
    assert lines[-1].endswith("$1,203.50")


def test_empty_tables_keep_headers():
    assert format_category_totals([], "$").splitlines()[0].startswith("Category")
    assert len(format_currency_summary([]).splitlines()) == 2
