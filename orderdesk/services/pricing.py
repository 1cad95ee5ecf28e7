from orderdesk.models.user import Role

# Price columns tried in order for each tier; the first configured one wins.
PRICE_FALLBACKS = {
    Role.ADMIN: ('dealer_price', 'b2b_price', 'price'),
    Role.DEALER: ('dealer_price', 'b2b_price', 'price'),
    Role.B2B_CUSTOMER: ('b2b_price', 'price'),
    Role.RETAIL_CUSTOMER: ('price',),
}


def price_for(tier, retail_price, b2b_price, dealer_price):
    """Effective unit price for ``tier``, or None when nothing applicable is configured."""
    prices = {'price': retail_price, 'b2b_price': b2b_price, 'dealer_price': dealer_price}
    for column in PRICE_FALLBACKS.get(tier, ('price',)):
        if prices[column] is not None:
            return prices[column]
    return None


def price_for_product(tier, product):
    return price_for(tier, product.price, product.b2b_price, product.dealer_price)
