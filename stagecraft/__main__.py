"""Entry point: ``python -m stagecraft``.

Subcommands:
  - ``run WORLD``             → Play a saved world headlessly, optionally writing a replay
  - ``diff BEFORE AFTER``     → Synthesize rule actions from a before/after pair of worlds
  - ``migrate WORLD``         → Upgrade a legacy world file to the current format
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stagecraft", description="Grid world rule engine")
    sub = parser.add_subparsers(dest="command")

    # --- Headless play ---
    run = sub.add_parser("run", help="Play a world for a number of ticks")
    run.add_argument("world", type=str, help="World JSON file")
    run.add_argument("--seed", type=int, default=42)
    run.add_argument("--ticks", type=int, default=200)
    run.add_argument("--out", type=str, default=None, help="Write the final world here")
    run.add_argument("--replay", type=str, default=None, help="Write a tick-by-tick replay here")
    run.add_argument("--strict", action="store_true", help="Stop on the first actor failure")
    run.add_argument("--log-level", type=str, default="INFO", choices=_LOG_LEVELS)
    run.add_argument("--trace-rules", action="store_true", help="Log why each rule matched or failed")

    # --- Diff synthesis ---
    diff = sub.add_parser("diff", help="Synthesize rule actions from a demonstration")
    diff.add_argument("before", type=str, help="World JSON before the demonstration")
    diff.add_argument("after", type=str, help="World JSON after the demonstration")
    diff.add_argument("--actor", type=str, required=True, help="Main actor id")
    diff.add_argument("--extent", type=str, default=None, help="xmin,xmax,ymin,ymax in stage cells")
    diff.add_argument("--log-level", type=str, default="WARNING", choices=_LOG_LEVELS)

    # --- Migration ---
    mig = sub.add_parser("migrate", help="Rewrite a world file in the current format")
    mig.add_argument("world", type=str)
    mig.add_argument("--out", type=str, default=None, help="Defaults to overwriting WORLD")
    mig.add_argument("--log-level", type=str, default="INFO", choices=_LOG_LEVELS)

    return parser


def _parse_extent(raw: str):
    from stagecraft.core.geometry import Extent

    try:
        xmin, xmax, ymin, ymax = (int(part) for part in raw.split(","))
    except ValueError:
        raise SystemExit(f"--extent expects xmin,xmax,ymin,ymax, got {raw!r}") from None
    return Extent(xmin, xmax, ymin, ymax)


def _run_play(args: argparse.Namespace) -> int:
    from stagecraft.config import EngineConfig
    from stagecraft.engine.world_loop import WorldLoop
    from stagecraft.errors import TickError
    from stagecraft.persistence import load_world, save_world
    from stagecraft.systems.rng import DeterministicRNG
    from stagecraft.utils.logging import setup_logging
    from stagecraft.utils.replay import ReplayRecorder

    config = EngineConfig(
        seed=args.seed,
        max_ticks=args.ticks,
        strict=args.strict,
        log_level=args.log_level,
        replay_file=args.replay or EngineConfig.replay_file,
    )
    setup_logging(config.log_level, trace_rules=args.trace_rules)

    world = load_world(args.world)
    recorder = ReplayRecorder(config.replay_file, config.seed) if args.replay else None
    loop = WorldLoop(config, world, rng=DeterministicRNG(config.seed), recorder=recorder)

    status = 0
    try:
        loop.run()
    except TickError as err:
        logger.error("%s", err)
        status = 1

    if args.out:
        save_world(loop.world, args.out)
    logger.info("Done at tick %d", loop.world.tick)
    return status


def _run_diff(args: argparse.Namespace) -> int:
    from stagecraft.core.models import actor_filled_points
    from stagecraft.core.geometry import Extent
    from stagecraft.persistence import action_to_dict, condition_to_dict, load_world
    from stagecraft.recording.diff import diff_worlds
    from stagecraft.utils.logging import setup_logging

    setup_logging(args.log_level, stream=sys.stderr)

    before = load_world(args.before)
    after = load_world(args.after)

    if args.extent:
        extent = _parse_extent(args.extent)
    else:
        stage = before.current_stage()
        actor = stage.actors.get(args.actor) if stage is not None else None
        if actor is None:
            logger.error("Actor %s is not on the current stage", args.actor)
            return 1
        extent = Extent.around(actor_filled_points(actor, before.characters.get(actor.character_id)))

    result = diff_worlds(before, after, extent, args.actor)
    if not result.ok:
        logger.error("%s", result.reason)
        return 1

    out = {
        "origin": {"x": result.origin.x, "y": result.origin.y},
        "conditions": [condition_to_dict(c) for c in result.conditions],
        "actions": [action_to_dict(a) for a in result.actions],
    }
    print(json.dumps(out, indent=2))
    return 0


def _run_migrate(args: argparse.Namespace) -> int:
    from stagecraft.persistence import load_world, save_world
    from stagecraft.utils.logging import setup_logging

    setup_logging(args.log_level)
    world = load_world(args.world)
    save_world(world, args.out or args.world)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        return _run_play(args)
    if args.command == "diff":
        return _run_diff(args)
    if args.command == "migrate":
        return _run_migrate(args)
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
