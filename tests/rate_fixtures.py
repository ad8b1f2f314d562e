# tests/rate_fixtures.py

"""HTML and record builders shared by the test modules."""

from cd_rates.models.rate_record import RateRecord

SELECTORS: dict[str, str] = {
    "marker": "#cdTable tbody tr",
    "rows": "#cdTable tbody tr[id^='a']",
    "row_id_prefix": "a",
    "apy": "td.apy",
    "min_deposit": "td:nth-child(2)",
    "account_name": "td:nth-child(4)",
    "last_updated": "td.updated",
}


def cd_row(
    account_id: str,
    apy: str | None = "4.50%",
    min_deposit: str | None = "$500",
    account_name: str | None = "12 Month CD",
    updated: str | None = None,
) -> str:
    """Build one ``#cdTable`` row; ``None`` leaves a cell empty."""
    updated_cell = (
        f'<td class="updated">{updated}</td>' if updated else ""
    )
    return (
        f'<tr id="a{account_id}">'
        f'<td class="apy">{apy or ""}</td>'
        f"<td>{min_deposit or ''}</td>"
        "<td>12 mo</td>"
        f"<td>{account_name or ''}</td>"
        f"{updated_cell}"
        "</tr>"
    )


def cd_page(*rows: str) -> str:
    """Wrap rows in a bank page with the CD table."""
    return (
        "<html><body><h1>Bank</h1>"
        '<table id="cdTable"><thead><tr><th>APY</th></tr></thead>'
        f"<tbody>{''.join(rows)}</tbody></table>"
        "</body></html>"
    )


def page_without_table() -> str:
    """A bank page that has no CD table."""
    return (
        "<html><body><h1>Bank</h1>"
        '<table id="savingsTable"><tbody><tr><td>1%</td></tr></tbody></table>'
        "</body></html>"
    )


def make_record(
    account_id: str = "1001",
    bank_name: str = "Acme Bank",
    account_name: str = "12-Month CD",
    apy: float = 4.5,
) -> RateRecord:
    """Create a RateRecord with sensible defaults."""
    return RateRecord(
        bank_name=bank_name,
        account_id=account_id,
        apy=apy,
        min_deposit="$1,000",
        account_name=account_name,
    )
