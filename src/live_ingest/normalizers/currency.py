"""Super Chat amount conversion into yen."""

from typing import Mapping, Optional, Union

from ..config_manager.youtube import DEFAULT_CURRENCY_RATES


UNPARSEABLE_AMOUNT_JPY = 200
DEFAULT_RATE = 150.0


def convert_to_jpy(
    amount_micros: Union[str, int, None],
    currency: Optional[str],
    rates: Mapping[str, float] = DEFAULT_CURRENCY_RATES,
    default_rate: float = DEFAULT_RATE,
) -> int:
    """
    Convert a provider amount in micro-units to whole yen.

    Unknown currencies use ``default_rate``; an unparseable amount counts as
    a fixed ``UNPARSEABLE_AMOUNT_JPY``.
    """
    try:
        micros = int(str(amount_micros).strip())
    except (TypeError, ValueError):
        return UNPARSEABLE_AMOUNT_JPY

    rate = rates.get((currency or "").upper(), default_rate)
    return round(micros / 1_000_000 * rate)
