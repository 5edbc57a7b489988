from decimal import Decimal

# ISO 4217 currencies whose minor unit is the major unit.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {"BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW", "PYG", "RWF",
     "UGX", "VND", "VUV", "XAF", "XOF", "XPF"}
)


def currency_exponent(currency: str | None) -> int:
    if currency and currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return 0
    return 2


def minor_to_major(amount: int, currency: str | None = "USD") -> Decimal:
    """Convert an integer amount in minor units to an exact major-unit Decimal.

    >>> minor_to_major(2550)
    Decimal('25.50')
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"amount must be an integer number of minor units, got {amount!r}")
    return Decimal(amount).scaleb(-currency_exponent(currency))


def major_to_minor(amount: Decimal, currency: str | None = "USD") -> int:
    scaled = amount.scaleb(currency_exponent(currency))
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{amount} has more precision than {currency} allows")
    return int(scaled)
