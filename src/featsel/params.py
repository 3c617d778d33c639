"""
Tunable Parameter Schema

Static description of the selection parameters a wrapper learner exposes to
an external tuner. Each entry names a parameter, its type and its bounds or
admissible values; the tuner reads the schema and passes chosen values back
through `with_params`.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from .exceptions import InvalidParameterError


@dataclass(frozen=True)
class ParamSpec:
    """One tunable parameter: name, type ('int', 'float', 'discrete') and bounds."""

    name: str
    type: str
    lower: Optional[float] = None
    upper: Optional[float] = None
    values: Optional[Tuple[Any, ...]] = None
    default: Any = None

    def __post_init__(self):
        if self.type not in ('int', 'float', 'discrete'):
            raise InvalidParameterError(f"Unknown parameter type: {self.type}", parameter=self.name)
        if self.type == 'discrete' and not self.values:
            raise InvalidParameterError(
                f"Discrete parameter {self.name} needs admissible values", parameter=self.name
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type,
            'lower': self.lower,
            'upper': self.upper,
            'values': list(self.values) if self.values is not None else None,
            'default': self.default,
        }


def check_param_names(schema: Sequence[ParamSpec], names: Sequence[str], owner: str) -> None:
    """Raise InvalidParameterError for names not declared in schema."""
    known = {spec.name for spec in schema}
    unknown = sorted(set(names) - known)
    if unknown:
        raise InvalidParameterError(
            f"Unknown parameter(s) for {owner}: {unknown}. Available: {sorted(known)}",
            unknown=unknown,
        )
