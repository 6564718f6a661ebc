from dataclasses import dataclass

from app.wizard.catalog import BASE_PRICES, SIZE_MULTIPLIERS

# Unknown materials / sizes fall back to the cheapest tier.
_FALLBACK_BASE = 10
_FALLBACK_MULTIPLIER = 1


@dataclass(frozen=True)
class PriceEstimate:
    low: float
    high: float

    def display(self) -> str:
        return f"${self.low:g} - ${self.high:g}"


def estimate_price(material: str | None, size: str | None) -> PriceEstimate | None:
    """Range estimate for a (material, size) pair, or None until both are set."""
    if not material or not size:
        return None
    base = BASE_PRICES.get(material, _FALLBACK_BASE)
    multiplier = SIZE_MULTIPLIERS.get(size, _FALLBACK_MULTIPLIER)
    low = float(base * multiplier)
    return PriceEstimate(low=low, high=low * 1.5)
