"""Compute and print intelligence snapshots.

Usage (after pip install):
    intel-snapshot
    intel-snapshot --symbols SPY QQQ
    intel-snapshot --symbols SPX --watch 60
"""

import argparse
import logging
import time
from pathlib import Path

from tabulate import tabulate

from market_intelligence.config import get_settings, load_settings
from market_intelligence.models.outcome import SIGNAL_LABELS, SignalName
from market_intelligence.models.snapshot import IntelligenceSnapshot
from market_intelligence.service.engine import IntelligenceEngine


def _signal_rows(snap: IntelligenceSnapshot) -> list[dict]:
    contributions = {}
    if snap.unified_score is not None:
        contributions = {c.name: c for c in snap.unified_score.contributions}

    rows = []
    for name in SignalName:
        c = contributions.get(name)
        if c is not None:
            status = "degraded" if name in snap.degraded else "ok"
            rows.append({
                "Signal": SIGNAL_LABELS[name],
                "Status": status,
                "Weight": f"{c.applied_weight:.3f}",
                "Contrib": f"{c.contribution:+.2f}",
                "Weighted": f"{c.weighted * 100:+.1f}",
                "Detail": c.tag,
            })
        else:
            missing = snap.missing(name)
            rows.append({
                "Signal": SIGNAL_LABELS[name],
                "Status": missing.reason.value if missing else "-",
                "Weight": "-",
                "Contrib": "-",
                "Weighted": "-",
                "Detail": (missing.detail[:60] if missing else ""),
            })
    return rows


def print_snapshot(snap: IntelligenceSnapshot) -> None:
    score = snap.unified_score
    print(f"=== {snap.symbol} @ {snap.as_of:%Y-%m-%d %H:%M:%S %Z} ===")
    print(
        f"Spot {snap.spot_price:.2f} | market {'open' if snap.market_open else 'closed'}"
        f" | quality {snap.quality.value}"
    )
    if score is not None:
        print(
            f"Score {score.score:+.1f} {score.direction.value.upper()}"
            f" | confidence {score.confidence:.0f}%"
            f" | {score.available_signals}/{score.total_signals} signals"
        )
    print()
    print(tabulate(_signal_rows(snap), headers="keys", tablefmt="simple"))

    if snap.gex is not None and snap.gex.top_levels:
        print("\n--- Key Gamma Levels ---")
        rows = [
            {"Strike": f"{lvl.strike:.2f}", "Net GEX": f"{lvl.net_gex:,.0f}", "Type": lvl.type.value}
            for lvl in snap.gex.top_levels
        ]
        print(tabulate(rows, headers="keys", tablefmt="simple", stralign="right"))
        if snap.gex.flip_point is not None:
            print(f"Gamma flip: {snap.gex.flip_point:.2f}")

    if snap.expected_move is not None:
        em = snap.expected_move
        print(
            f"\nExpected move: ±{em.daily_move:.2f} ({em.daily_move_pct:.2f}%) daily,"
            f" ±{em.weekly_move:.2f} weekly; range {em.lower_target:.2f} - {em.upper_target:.2f}"
        )

    if score is not None:
        print(f"\n{score.thesis}")
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description="Market microstructure intelligence snapshot")
    parser.add_argument(
        "--symbols",
        nargs="+",
        default=None,
        help="Underlyings to analyze (default: engine.symbols from config)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config overriding the packaged defaults",
    )
    parser.add_argument(
        "--watch",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Keep refreshing in the background and reprint every SECONDS",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings(Path(args.config), _force_reload=True) if args.config else get_settings()
    if args.symbols:
        engine_cfg = settings.engine.model_copy(update={"symbols": [s.upper() for s in args.symbols]})
        settings = settings.model_copy(update={"engine": engine_cfg})

    engine = IntelligenceEngine(settings=settings)
    try:
        for symbol in engine.symbols:
            snap = engine.force_refresh(symbol)
            if snap is None:
                print(f"{symbol}: no snapshot (spot price unavailable), see log for details\n")
                continue
            print_snapshot(snap)

        if args.watch:
            engine.start()
            while True:
                time.sleep(args.watch)
                for symbol in engine.symbols:
                    snap = engine.get_snapshot(symbol)
                    if snap is not None:
                        print_snapshot(snap)
    except KeyboardInterrupt:
        pass
    finally:
        engine.stop()


if __name__ == "__main__":
    main()
