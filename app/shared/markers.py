from app.core.constants import DISCOUNT_PRICE_MARKERS, FREE_PRICE_MARKERS, RAIN_WEATHER_MARKERS


def is_free_price(price: str | None) -> bool:
    """True for price strings that mean free of charge."""
    if not price:
        return False
    lowered = price.strip().lower()
    return lowered == "0" or any(marker in lowered for marker in FREE_PRICE_MARKERS)


def is_discount_price(price: str | None) -> bool:
    if not price:
        return False
    lowered = price.lower()
    return any(marker in lowered for marker in DISCOUNT_PRICE_MARKERS)


def is_rainy(weather: str | None) -> bool:
    if not weather:
        return False
    lowered = weather.lower()
    return any(marker in lowered for marker in RAIN_WEATHER_MARKERS)
