"""Merge the three configuration layers into one InternalConfig.

``resolve_config()`` is the only place layers meet:

    ParamConfig   expert defaults (alias lists, timeouts, worker count)
      < UserConfig  the CONFIG dict of scripts/user_config.py
      < CLIConfig   --table-path, --max-workers, --log-file, -v

Section dicts (``table``, ``attributes``, ``fetch``, ``logging``) merge key
by key. Lists such as ``sources`` or ``id_keys`` are replaced as a whole: a
user who lists two sources gets exactly those two.
"""

from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel

from flowmap.schemas.param import ParamConfig
from flowmap.schemas.user import UserConfig
from flowmap.schemas.cli import CLIConfig
from flowmap.schemas.internal import InternalConfig

_Layer = TypeVar("_Layer", bound=BaseModel)


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Merge ``overrides`` into a copy of ``base``, left to right.

    Examples
    --------
    >>> defaults = {"fetch": {"timeout_sec": 30.0, "max_workers": 4}, "sources": []}
    >>> user = {"fetch": {"max_workers": 2}, "sources": [{"path": "canals.shp"}]}
    >>> deep_merge(defaults, user)
    {'fetch': {'timeout_sec': 30.0, 'max_workers': 2}, 'sources': [{'path': 'canals.shp'}]}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def _as_layer(value: Union[dict, _Layer, None], model: Type[_Layer]) -> _Layer:
    # None and {} mean "no overrides from this layer"
    if isinstance(value, model):
        return value
    return model.model_validate(value or {})


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Resolve the runtime configuration (param < user < cli).

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert defaults. Required.
    user_cfg : dict or UserConfig, optional
        User file overrides, upper-case aliases accepted.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.

    Returns
    -------
    InternalConfig
        Frozen configuration handed to FlowReconciler and FlowDataStore.

    Raises
    ------
    pydantic.ValidationError
        If any layer, or the merged result, is invalid (unknown feature
        type, ``max_workers`` of 0, empty ``id_keys``, ...).

    Examples
    --------
    >>> user = UserConfig(TABLE_PATH="flows.csv", SOURCES=[("rivers.shp", "river")])
    >>> config = resolve_config(ParamConfig(), user, CLIConfig(max_workers=1))
    >>> config.sources[0].type_override, config.fetch.max_workers
    ('river', 1)
    """
    param = _as_layer(param_cfg, ParamConfig)
    user = _as_layer(user_cfg, UserConfig)
    cli = _as_layer(cli_cfg, CLIConfig)

    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )
    return InternalConfig.model_validate(merged)
