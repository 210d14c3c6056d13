"""CLI: Measure self-play data generation throughput."""

import argparse
import time
from pathlib import Path
from typing import List, Optional

import torch
import torch.nn as nn

from rebel.config import Config
from rebel.game.kuhn_poker import KuhnPoker
from rebel.game.tree import get_depth, unroll
from rebel.pipeline.connector import DataConnector
from rebel.pipeline.context import create_data_context
from rebel.replay.prioritized_replay import PrioritizedReplay
from rebel.utils.logging import setup_logger
from rebel.utils.timers import Timer
from rebel.value_net.cfv_net import create_value_net
from rebel.value_net.model_locker import ModelLocker

logger = setup_logger("gen_benchmark")

# Settings used when no --config is given
BENCHMARK_DEFAULTS = {
    "deck_size": 3,
    "antes": (1, 1),
    "num_iters": 1024,
    "max_depth": 2,
    "linear_update": True,
    "optimistic": False,
    "num_threads": 10,
    "device": "cpu",
    "per_device": 1,
}

# Command-line flag -> config section it overrides
_FLAG_SECTIONS = {
    "deck_size": "solving",
    "antes": "solving",
    "num_iters": "subgame",
    "max_depth": "subgame",
    "num_threads": "pipeline",
    "device": "model",
    "per_device": "model",
}


def load_net(path: Path, game: KuhnPoker, config: Config) -> nn.Module:
    """Build the value net, loading weights or a pickled module from ``path`` if given."""
    net = create_value_net(game, config.model)
    if path is None:
        logger.info("No --net given, using a randomly initialized value net")
        return net
    
    loaded = torch.load(path, map_location="cpu", weights_only=False)
    if isinstance(loaded, nn.Module):
        return loaded
    net.load_state_dict(loaded)
    return net


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark recursive-solving data generation")
    parser.add_argument("--deck_size", type=int,
                       help="Number of distinct cards (default: 3)")
    parser.add_argument("--antes", type=int, nargs=2, metavar=("A", "B"),
                       help="Ante of each player (default: 1 1)")
    parser.add_argument("--num_iters", type=int,
                       help="CFR iterations per resolve (default: 1024)")
    parser.add_argument("--max_depth", type=int,
                       help="Resolver depth cutoff (default: 2)")
    parser.add_argument("--num_threads", type=int,
                       help="Number of worker loops (default: 10)")
    parser.add_argument("--per_device", type=int,
                       help="Model copies on the device (default: 1)")
    parser.add_argument("--num_cycles", type=int, default=6,
                       help="Number of reporting cycles")
    parser.add_argument("--cycle_seconds", type=float, default=10.0,
                       help="Seconds per reporting cycle")
    parser.add_argument("--device", type=str,
                       help="Torch device for the value net (default: cpu)")
    parser.add_argument("--net", type=Path,
                       help="Saved value net (state dict or module)")
    parser.add_argument("--config", type=Path,
                       help="YAML config; flags given on the command line override it")
    parser.add_argument("--log-file", type=Path,
                       help="Also write logs to this file")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Merge the YAML config (or the benchmark defaults) with the flags that were given.
    
    Sections are rebuilt through their dataclasses so validation runs on the
    merged values.
    
    Raises:
        ValueError: If the merged configuration is invalid
    """
    if args.config:
        data = Config.from_yaml(args.config).to_dict()
    else:
        data = Config.from_options(**BENCHMARK_DEFAULTS).to_dict()
    
    for name, section in _FLAG_SECTIONS.items():
        value = getattr(args, name)
        if value is None:
            continue
        if section == "subgame":
            data["solving"]["subgame_params"][name] = value
        else:
            data[section][name] = value
    return Config.from_dict(data)


def run_benchmark(config: Config, net_path: Optional[Path], num_cycles: int,
                  cycle_seconds: float) -> PrioritizedReplay:
    """Run the worker pool for ``num_cycles`` reporting cycles and return its buffer."""
    game = KuhnPoker(config.solving.deck_size, config.solving.antes)
    logger.info(f"deck_size={game.deck_size} antes={game.antes}")
    full_tree = unroll(game)
    logger.info(f"Tree of depth {get_depth(full_tree)} has {len(full_tree)} nodes")
    
    net = load_net(net_path, game, config)
    locker = ModelLocker(net, config.model.device, num_slots=config.model.per_device)
    replay = PrioritizedReplay(config.replay)
    
    def make_connector(i: int) -> DataConnector:
        return DataConnector.from_model_locker(
            locker, replay, game, slot=i % config.model.per_device
        )
    
    context = create_data_context(config, game, make_connector)
    logger.info("Starting the context")
    context.start()
    timer = Timer("gen_benchmark")
    try:
        for _ in range(num_cycles):
            time.sleep(cycle_seconds)
            context.check_health()
            secs = timer.tick()
            added = replay.num_add()
            logger.info(f"time={secs:.1f} items={added} per_second={added / secs:.1f}")
    finally:
        context.terminate()
        context.metrics.log_summary()
    return replay


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    
    if args.log_file:
        setup_logger("gen_benchmark", log_file=args.log_file)
    
    config = build_config(args)
    run_benchmark(config, args.net, args.num_cycles, args.cycle_seconds)


if __name__ == "__main__":
    main()
