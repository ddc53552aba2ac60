"""Human-readable offer labels for storefront badges."""
from decimal import Decimal

from app.models.offer import Offer, OfferType


def _plain(value: Decimal) -> str:
    """15.00 -> "15", 12.50 -> "12.5"."""
    return format(Decimal(value).normalize(), "f")


def describe_offer(offer: Offer, currency_symbol: str = "£") -> str:
    """
    Short label such as "15% off (min 20 items)" or "Free Gold Bauble".
    """
    if offer.type == OfferType.PERCENT_OFF.value and offer.percent_off is not None:
        text = f"{_plain(offer.percent_off)}% off"
    elif offer.type == OfferType.AMOUNT_OFF.value and offer.amount_off is not None:
        text = f"{currency_symbol}{_plain(offer.amount_off)} off"
    elif offer.type == OfferType.FREE_ITEM.value:
        product = offer.free_item_product
        text = f"Free {product.name}" if product is not None else "Free item"
    else:
        text = offer.name

    if offer.min_quantity and offer.min_quantity > 0:
        text += f" (min {offer.min_quantity} items)"
    if offer.min_order_amount:
        text += f" (min order {currency_symbol}{_plain(offer.min_order_amount)})"
    return text
