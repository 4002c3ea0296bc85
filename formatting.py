"""
Display helpers driven by the user's profile: currency symbols and date formats.
"""
from datetime import date, datetime
from typing import Dict, NamedTuple, Union


class Currency(NamedTuple):
    code: str
    symbol: str
    name: str
    locale: str


CURRENCIES: Dict[str, Currency] = {
    "USD": Currency("USD", "$", "US Dollar", "en-US"),
    "INR": Currency("INR", "₹", "Indian Rupee", "en-IN"),
    "EUR": Currency("EUR", "€", "Euro", "en-EU"),
    "GBP": Currency("GBP", "£", "British Pound", "en-GB"),
    "CAD": Currency("CAD", "C$", "Canadian Dollar", "en-CA"),
    "AUD": Currency("AUD", "A$", "Australian Dollar", "en-AU"),
    "JPY": Currency("JPY", "¥", "Japanese Yen", "ja-JP"),
    "CNY": Currency("CNY", "¥", "Chinese Yuan", "zh-CN"),
}
DEFAULT_CURRENCY = "USD"

DATE_FORMATS = {
    "MM/DD/YYYY": "%m/%d/%Y",
    "DD/MM/YYYY": "%d/%m/%Y",
    "YYYY-MM-DD": "%Y-%m-%d",
    "DD-MM-YYYY": "%d-%m-%Y",
}

FREQUENCY_LABELS = {
    "weekly": "Weekly",
    "bi-weekly": "Bi-weekly",
    "monthly": "Monthly",
    "quarterly": "Quarterly",
    "annually": "Annually",
}


def get_currency(code: str) -> Currency:
    """Look up a currency; unknown codes fall back to US dollars."""
    return CURRENCIES.get((code or "").upper(), CURRENCIES[DEFAULT_CURRENCY])


def currency_symbol(code: str) -> str:
    return get_currency(code).symbol


def currency_name(code: str) -> str:
    return get_currency(code).name


def format_currency(
    amount: float,
    code: str = DEFAULT_CURRENCY,
    min_fraction_digits: int = 0,
    max_fraction_digits: int = 0,
    show_symbol: bool = True,
) -> str:
    """Format an amount as e.g. ``$1,234`` or ``-€12.50``.

    The number is rounded to ``max_fraction_digits``; trailing zeros beyond
    ``min_fraction_digits`` are dropped.
    """
    max_fraction_digits = max(max_fraction_digits, min_fraction_digits)
    text = f"{abs(amount):,.{max_fraction_digits}f}"
    if max_fraction_digits > min_fraction_digits and "." in text:
        whole, fraction = text.split(".")
        fraction = fraction.rstrip("0").ljust(min_fraction_digits, "0")
        text = f"{whole}.{fraction}" if fraction else whole
    sign = "-" if amount < 0 and float(text.replace(",", "")) != 0 else ""
    symbol = get_currency(code).symbol if show_symbol else ""
    return f"{sign}{symbol}{text}"


def format_date(value: Union[date, datetime, str], date_format: str = "MM/DD/YYYY") -> str:
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return value.strftime(DATE_FORMATS.get(date_format, DATE_FORMATS["MM/DD/YYYY"]))


def frequency_label(frequency: str) -> str:
    return FREQUENCY_LABELS.get(frequency, frequency)
