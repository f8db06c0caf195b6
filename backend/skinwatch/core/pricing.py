import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from skinwatch.core.exceptions import ValidationError


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    steam_id: int
    symbol: str


# Steam wallet currency ids; symbol lookup only, no conversion
CURRENCIES: dict[str, CurrencyInfo] = {
    c.code: c
    for c in (
        CurrencyInfo("USD", 1, "$"),
        CurrencyInfo("GBP", 2, "£"),
        CurrencyInfo("EUR", 3, "€"),
        CurrencyInfo("CHF", 4, "CHF "),
        CurrencyInfo("RUB", 5, "pуб. "),
        CurrencyInfo("PLN", 6, "zł "),
        CurrencyInfo("BRL", 7, "R$ "),
        CurrencyInfo("JPY", 8, "¥ "),
        CurrencyInfo("NOK", 9, "kr "),
        CurrencyInfo("IDR", 10, "Rp "),
        CurrencyInfo("MYR", 11, "RM"),
        CurrencyInfo("PHP", 12, "P"),
        CurrencyInfo("SGD", 13, "S$"),
        CurrencyInfo("THB", 14, "฿"),
        CurrencyInfo("VND", 15, "₫"),
        CurrencyInfo("KRW", 16, "₩ "),
        CurrencyInfo("TRY", 17, "TL "),
        CurrencyInfo("UAH", 18, "₴"),
        CurrencyInfo("MXN", 19, "Mex$ "),
        CurrencyInfo("CAD", 20, "CDN$ "),
        CurrencyInfo("AUD", 21, "A$ "),
        CurrencyInfo("NZD", 22, "NZ$ "),
        CurrencyInfo("CNY", 23, "¥ "),
        CurrencyInfo("INR", 24, "₹ "),
    )
}


def get_currency(code: str | None) -> CurrencyInfo:
    if not code:
        raise ValidationError(
            "Invalid currency code. Use /currency to see available currencies."
        )
    info = CURRENCIES.get(code.strip().upper())
    if info is None:
        raise ValidationError(
            "Invalid currency code. Use /currency to see available currencies."
        )
    return info


def currency_symbol(code: str) -> str:
    info = CURRENCIES.get(code.upper())
    return info.symbol if info else f"{code} "


def format_price(amount: float | Decimal | None, currency: str = "USD") -> str:
    if amount is None:
        return "n/a"
    return f"{currency_symbol(currency)}{float(amount):,.2f}"


def parse_price_to_decimal(price_raw: str | None) -> Decimal | None:
    if not price_raw:
        return None

    # Examples:
    # "$1,234.56"
    # "1.234,56€"
    # "CHF 12.30"
    # "12,--€"
    s = price_raw.strip().replace("\u00a0", " ")
    s = s.replace("--", "00")
    s = re.sub(r"[^\d.,]", " ", s)

    tokens = re.findall(r"\d[\d.,]*", s)
    if not tokens:
        return None

    num = tokens[-1].rstrip(".,")

    if "," in num and "." in num:
        # whichever separator comes last is the decimal point
        if num.rfind(",") > num.rfind("."):
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif "," in num:
        if re.search(r",\d{1,2}$", num):
            num = num.replace(",", ".")
        else:
            num = num.replace(",", "")

    try:
        return Decimal(num)
    except InvalidOperation:
        return None


def parse_volume(volume_raw: str | int | None) -> int | None:
    if volume_raw is None:
        return None
    if isinstance(volume_raw, int):
        return volume_raw
    digits = re.sub(r"[^\d]", "", volume_raw)
    return int(digits) if digits else None
