"""
Entry point for the arbitrage engine.

Usage:
    python -m dexarb
    dexarb  # if installed via pip
"""

import asyncio
import sys


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from dexarb import __version__
    from dexarb.config.settings import get_settings
    from dexarb.core.engine import ArbitrageEngine
    from dexarb.core.errors import ConfigurationError
    from dexarb.core.event_bus import Event, EventType
    from dexarb.core.types import CycleReport
    from dexarb.telemetry.logger import setup_logging
    from dexarb.telemetry.reporter import CycleReporter

    # Print banner
    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     DEX CROSS-VENUE ARBITRAGE ENGINE v{__version__:<18}      ║
║                                                               ║
║     Buy low, bridge, sell high (dry run)                      ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    # Load settings
    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure you have a .env file with:")
        print('  PRICE_SOURCES={"uniswap": "https://...", "pancakeswap": "https://..."}')
        print("  STAKING_POOL_ADDRESS=0x...")
        print("or set SIMULATE=true to run against simulated venues.")
        return 1

    # Print configuration summary
    print("Configuration:")
    print(f"  Mode:           {settings.run_mode}{' (SIMULATED VENUES)' if settings.simulate else ''}")
    print(f"  Venues:         {', '.join(settings.venue_names) or 'simulated defaults'}")
    print(f"  Trade amount:   ${settings.trade_amount:.2f}")
    print(f"  Bridge fee:     ${settings.bridge_fee:.2f}")
    print(f"  Min profit:     ${settings.min_profit:.2f}")
    print(f"  Tolerance:      {settings.slippage_tolerance * 100:.2f}%")
    print(f"  Re-check:       {settings.recheck_mode}")
    print(f"  Poll interval:  {settings.poll_interval_s}s")
    print()

    async_logger = setup_logging(level=settings.log_level, log_file=settings.log_file)

    try:
        if settings.run_mode == "serve":
            from dexarb.dashboard.server import main as serve

            serve(settings)
            return 0

        engine = ArbitrageEngine(settings)
        reporter = CycleReporter(metrics=engine.metrics)

        def show_report(event: Event[CycleReport]) -> None:
            reporter.display(event.payload)

        engine.event_bus.subscribe_sync(EventType.CYCLE_COMPLETE, show_report)

        async def run_engine() -> int:
            try:
                await engine.start()
                if settings.run_mode == "once":
                    await engine.run_cycle()
                else:
                    await engine.run()
                return 0

            except KeyboardInterrupt:
                print("\nInterrupted by user")
                return 0

            except Exception as e:
                print(f"\nFatal error: {e}")
                import traceback

                traceback.print_exc()
                return 1

            finally:
                await engine.shutdown()
                reporter.print_summary()

        return asyncio.run(run_engine())

    finally:
        async_logger.stop()


if __name__ == "__main__":
    sys.exit(main())
