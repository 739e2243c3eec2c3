"""Shared pydantic base for every flowmap configuration layer.

ParamConfig, UserConfig, CLIConfig and InternalConfig (and the nested
section models under them) all derive from FlowmapBaseModel, so a typo in a
section key or a source entry fails at resolution time instead of being
silently ignored by the reconciler.
"""

from pydantic import BaseModel, ConfigDict


class FlowmapBaseModel(BaseModel):
    """Strict base model for flowmap configuration.

    - unknown keys are rejected (UserConfig relaxes this for user files)
    - assignments are re-validated
    - enum fields store their value, so ``FeatureType.RIVER`` round-trips
      through ``model_dump()`` as ``"river"``
    - surrounding whitespace is stripped from paths, column and key names
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
