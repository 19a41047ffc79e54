"""Typed configuration of the coreference system.

The configuration is a flat key/value mapping (``crible.sieves``,
``crible.maxdist``...), stored on disk as YAML.
"""
from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional, Union
from pathlib import Path
import os
import re
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from crible.errors import ConfigurationError
from crible.sieves import DEFAULT_SIEVES


_SIEVES_SEPARATOR = re.compile(r",\s*")


class CorefConfig(BaseModel):
    """Configuration of a :class:`.SieveCoreferenceSystem`.

    Fields can be given using either their python name
    (``max_dist``) or their property key (``crible.maxdist``).
    """

    #: ordered sieve passes
    sieves: List[str] = Field(default=list(DEFAULT_SIEVES), alias="crible.sieves")
    #: score each sieve pass
    score: bool = Field(default=False, alias="crible.score")
    postprocessing: bool = Field(default=False, alias="crible.postprocessing")
    remove_singletons: bool = Field(default=True, alias="crible.removeSingletons")
    remove_appositions: bool = Field(default=True, alias="crible.removeAppositions")
    use_gold_mentions: bool = Field(default=False, alias="crible.useGoldMentions")
    replicate_conll: bool = Field(default=False, alias="crible.replicateconll")
    singleton_predictor: bool = Field(default=True, alias="crible.singleton.predictor")
    #: maximum sentence distance between a mention and its
    #: antecedent.  -1 means no limit.
    max_dist: int = Field(default=-1, alias="crible.maxdist")
    strict_twins: bool = Field(default=True, alias="crible.twins.strict")

    optimize_sieves: bool = Field(default=False, alias="crible.optimize.sieves")
    #: ``<metric>.<sub score>``, such as ``"muc.F1"``
    optimize_score: str = Field(
        default="pairwise.Precision", alias="crible.optimize.sieves.score"
    )
    #: comma separated ordering constraints, such as
    #: ``"MarkRole < *, ExactStringMatch < PronounMatch"``
    optimize_constraints: Optional[str] = Field(
        default=None, alias="crible.optimize.sieves.keepOrder"
    )
    optimize_executor: Literal["sequential", "thread", "process"] = Field(
        default="sequential", alias="crible.optimize.executor"
    )
    optimize_workers: Optional[int] = Field(default=None, alias="crible.optimize.workers")

    #: command used to launch a distributed trial.  The path of the
    #: trial property file is appended to it with ``-props``.
    dist_cmd: Optional[str] = Field(default=None, alias="crible.dist.cmd")
    dist_workdir: str = Field(default="workdir", alias="crible.dist.workdir")
    #: seconds between two checks for finished distributed trials
    dist_poll: float = Field(default=60, alias="crible.dist.poll")

    score_file: Optional[str] = Field(default=None, alias="crible.score.file")
    log_file: Optional[str] = Field(default=None, alias="crible.log")
    #: pickled list of documents, used by distributed trials
    corpus: Optional[str] = Field(default=None, alias="crible.corpus")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("sieves", mode="before")
    @classmethod
    def _split_sieves(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [s.strip() for s in _SIEVES_SEPARATOR.split(value.strip()) if s.strip()]
        return value

    @staticmethod
    def from_properties(properties: Dict[str, Any]) -> CorefConfig:
        """
        :raise ConfigurationError: if a property is unknown or has an
            invalid value
        """
        try:
            return CorefConfig.model_validate(properties)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    def to_properties(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def with_updates(self, **kwargs) -> CorefConfig:
        """
        :return: a copy of this configuration, with some fields
            changed (using their python names)
        """
        properties = self.model_dump()
        properties.update(kwargs)
        return CorefConfig.model_validate(properties)


def load_config(path: Union[str, os.PathLike]) -> CorefConfig:
    """Load a configuration from a YAML file

    :raise ConfigurationError: if the file content is not a valid
        configuration
    """
    with Path(path).open("r", encoding="utf-8") as f:
        properties = yaml.safe_load(f) or {}
    if not isinstance(properties, dict):
        raise ConfigurationError(f"{path} does not contain a mapping of properties")
    return CorefConfig.from_properties(properties)


def save_config(config: CorefConfig, path: Union[str, os.PathLike]):
    with Path(path).open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_properties(), f, sort_keys=False)
