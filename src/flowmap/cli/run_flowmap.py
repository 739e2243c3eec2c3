"""Core flowmap pipeline execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import sys
import json
import logging
import importlib.util
from collections import Counter
from pathlib import Path
from typing import Optional, Dict, Any, Tuple

from flowmap.data.models import FeatureType, FlowFeature
from flowmap.pipeline.reconciler import FlowReconciler
from flowmap.pipeline.store import FlowDataStore
from flowmap.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig, InternalConfig


logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def setup_logging(config: InternalConfig) -> None:
    """Configure root logger with console and optional file handlers.

    Log level and file path come from ``config.logging``.
    """
    log_level = getattr(logging, config.logging.level, logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Clear existing handlers and add new ones
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    if config.logging.log_file:
        log_path = Path(config.logging.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    logger.info("Logging: level=%s, file=%s", config.logging.level, config.logging.log_file)


def summarize(features) -> Dict[str, int]:
    """Count features per category (every category present, possibly 0)."""
    counts = Counter(feature.properties.type.value for feature in features)
    return {t.value: counts.get(t.value, 0) for t in FeatureType}


def run_flowmap_pipeline(
    user_config_path: str,
    cli_args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
    dump: bool = False,
    timeout: Optional[float] = None,
) -> Tuple[FlowFeature, ...]:
    """Execute the flow reconciliation pipeline once.

    This is the core pipeline execution function. It:
    1. Loads and resolves configuration (Param < User < CLI)
    2. Configures logging
    3. Loads flow features through a FlowDataStore (background worker)
    4. Prints a per-category summary, optionally the GeoJSON itself

    Parameters
    ----------
    user_config_path : str
        Path to user config file (Python file with CONFIG dict).

    cli_args : dict, optional
        CLI argument overrides. Keys: table_path, max_workers, log_level,
        log_file. All optional.

    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    dump : bool, optional
        If True, write the FeatureCollection JSON to stdout (the summary
        then goes to stderr).

    timeout : float, optional
        Seconds to wait for the worker. None waits indefinitely.

    Returns
    -------
    tuple of FlowFeature

    Raises
    ------
    FileNotFoundError
        If user_config_path does not exist.
    ValueError
        If configuration validation fails or no table path is configured.
    FlowDataError
        If the flow table cannot be loaded.
    """
    param_cfg = ParamConfig()  # Expert defaults

    user_cfg_dict = load_user_config_dict(user_config_path)
    user_cfg = UserConfig.model_validate(user_cfg_dict)

    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    # Filter None values
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    # Resolve to internal config (Param < User < CLI)
    config = resolve_config(param_cfg, user_cfg, cli_cfg)
    setup_logging(config)

    out = sys.stderr if dump else sys.stdout
    print(f"\n{'='*60}", file=out)
    print("flowmap Flow Reconciliation", file=out)
    print('='*60, file=out)
    print(f"Config:  {user_config_path}", file=out)
    print(f"Table:   {config.table_path}", file=out)
    print(f"Sources: {len(config.sources)}", file=out)
    print('='*60, file=out)

    if verbose:
        print("\nFull Internal Configuration:", file=out)
        print(json.dumps(config.model_dump(mode="json"), indent=2), file=out)
        print('='*60, file=out)

    store = FlowDataStore(config)
    features = store.get(timeout=timeout)

    for category, count in summarize(features).items():
        print(f"{category:>6}: {count}", file=out)
    print(f" total: {len(features)}", file=out)

    if dump:
        json.dump(FlowReconciler.to_feature_collection(features), sys.stdout)
        sys.stdout.write("\n")

    return features
