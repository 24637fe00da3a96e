"""
Synthetic chart history for each catalog asset.
"""

from tradesim_core import PriceFeed, SimulatorConfig


def main() -> None:
    config = SimulatorConfig.from_env()
    feed = PriceFeed(seed=config.seed)
    for symbol in feed.symbols():
        history = feed.history(symbol, days=config.history_days)
        prices = history["price"]
        print(
            f"{symbol:<5} {feed.asset(symbol).asset_class.value:<16} "
            f"first={prices.iloc[0]:>10,.2f} last={prices.iloc[-1]:>10,.2f} "
            f"low={prices.min():>10,.2f} high={prices.max():>10,.2f}"
        )


if __name__ == "__main__":
    main()
