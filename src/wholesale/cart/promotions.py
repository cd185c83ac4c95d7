"""Promo codes a cart can carry.

A promotion is a percentage off the cart subtotal, capped at a fixed amount,
optionally gated on a minimum subtotal. The cart re-evaluates its promo on
every recompute, so a code that stops qualifying is simply dropped.
"""

from wholesale.errors import InvalidPromoCode, PromoNotEligible
from wholesale.pricing import money


class Promotion:
    def __init__(self, code, rate, cap, minimum_subtotal=0.0, description=None):
        self.code = code
        self.rate = rate
        self.cap = cap
        self.minimum_subtotal = minimum_subtotal
        self.description = description

    def is_eligible(self, subtotal) -> bool:
        return subtotal > 0 and subtotal >= self.minimum_subtotal

    def discount_for(self, subtotal) -> float:
        """Discount granted on ``subtotal``; raises ``PromoNotEligible`` below the threshold."""
        if not self.is_eligible(subtotal):
            raise PromoNotEligible(
                f"Promo code {self.code} requires a cart subtotal of at least {self.minimum_subtotal:.2f}",
                promo_code=self.code,
                minimum_subtotal=self.minimum_subtotal,
            )
        return money(min(subtotal * self.rate, self.cap))

    def __repr__(self):
        return f"Promotion({self.code!r}, rate={self.rate}, cap={self.cap})"


PROMOTIONS = {
    promotion.code: promotion
    for promotion in (
        Promotion("WELCOME10", rate=0.10, cap=1000.0, description="10% off your order"),
        Promotion("BULK20", rate=0.20, cap=2000.0, minimum_subtotal=5000.0, description="20% off bulk orders"),
    )
}


def find_promotion(code: str) -> Promotion:
    promotion = PROMOTIONS.get((code or "").strip().upper())
    if promotion is None:
        raise InvalidPromoCode(f"Invalid promo code: {code}", promo_code=code)
    return promotion
