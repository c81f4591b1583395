"""Fixed-point helpers for AMM state.

All values are integers:

* prices are quote-per-asset scaled by ``WAD`` (18 decimals);
* the reference ETH/USD price carries ``CHAINLINK_ETH_DECIMALS`` (8 decimals);
* USD results (liquidity, market cap, volume) are scaled by ``WAD``.

Every function multiplies first and divides once at the end so no
intermediate result is truncated.
"""

WAD = 10 ** 18
CHAINLINK_ETH_DECIMALS = 10 ** 8
Q96 = 1 << 96
Q192 = 1 << 192


def compute_price(asset_reserve: int, quote_reserve: int) -> int:
    """Constant-product price: quote per asset, 18 dp. Zero on an empty side."""
    if asset_reserve == 0 or quote_reserve == 0:
        return 0
    return quote_reserve * WAD // asset_reserve


def price_from_sqrt_price_x96(sqrt_price_x96: int, is_token0: bool) -> int:
    """Quote-per-asset price from a V3/V4 ``sqrtPriceX96``.

    ``sqrtPriceX96**2 / 2**192`` is token1 per token0; when the asset is
    token1 the ratio is inverted.
    """
    if sqrt_price_x96 == 0:
        return 0
    ratio_x192 = sqrt_price_x96 * sqrt_price_x96
    if is_token0:
        return ratio_x192 * WAD // Q192
    return Q192 * WAD // ratio_x192


def reserves_from_liquidity(liquidity: int, sqrt_price_x96: int) -> tuple[int, int]:
    """Virtual (token0, token1) reserves of a concentrated position at the current price."""
    if liquidity == 0 or sqrt_price_x96 == 0:
        return 0, 0
    reserve0 = liquidity * Q96 // sqrt_price_x96
    reserve1 = liquidity * sqrt_price_x96 // Q96
    return reserve0, reserve1


def usd_value(amount: int, eth_price: int) -> int:
    """USD value (18 dp) of an amount of an 18-decimal ETH-denominated token."""
    return amount * eth_price // CHAINLINK_ETH_DECIMALS


def compute_dollar_liquidity(asset_reserve: int, quote_reserve: int, price: int, eth_price: int) -> int:
    """USD value of both sides of the pool: ``(asset * price + quote) * ethPrice``."""
    quote_equivalent = asset_reserve * price + quote_reserve * WAD
    return quote_equivalent * eth_price // (WAD * CHAINLINK_ETH_DECIMALS)


def compute_market_cap(price: int, eth_price: int, total_supply: int) -> int:
    """``price * totalSupply / 1e18 * ethPrice / 1e8`` with a single final division."""
    return price * total_supply * eth_price // (WAD * CHAINLINK_ETH_DECIMALS)


def compute_graduation_percentage(balance: int, threshold: int) -> float:
    """Bonding-curve progress with two decimals, uncapped above 100."""
    if threshold == 0:
        return 0.0
    return (balance * 10_000 // threshold) / 100


def compute_percent_change(current: int, past: int) -> float:
    if past == 0:
        return 0.0
    return (current - past) * 100 / past
