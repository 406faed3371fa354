"""Parameters for the Splat simulation model."""

import math
import numbers
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Mapping, Optional, Self, Sequence

from .errors import InvalidInputError, ParameterDomainError


@dataclass(frozen=True)
class SplatParams:
    """Parameters of the Splat simulation.

    Instances are immutable. Use :meth:`update` (or :func:`set_params`) to
    obtain a modified copy; every value is checked against its domain and an
    invalid value raises :class:`ParameterDomainError` without touching the
    original object.

    Estimable parameters may be ``None`` to mark them as unset. The simulator
    refuses to run while a required parameter is unset.

    Attributes:
        ngenes: Number of genes to simulate.
        ncells: Number of cells to simulate.
        seed: Random seed used when no seed is passed to the simulator.
        group_prob: Probability of a cell belonging to each group.
        mean_shape: Shape parameter of the gamma distribution of gene means.
        mean_rate: Rate parameter of the gamma distribution of gene means.
        lib_loc: Mean of the log-normal distribution of library sizes.
        lib_scale: Standard deviation of the log-normal distribution of
            library sizes.
        out_prob: Probability of a gene being an expression outlier.
        out_fac_loc: Mean of the log-normal distribution of outlier factors.
        out_fac_scale: Standard deviation of the log-normal distribution of
            outlier factors.
        de_prob: Probability of a gene being differentially expressed in a
            group.
        de_down_prob: Probability that a DE gene is downregulated.
        de_fac_loc: Mean of the log-normal distribution of DE factors.
        de_fac_scale: Standard deviation of the log-normal distribution of
            DE factors.
        bcv_common: Common biological coefficient of variation.
        bcv_df: Degrees of freedom of the BCV inverse chi-squared
            distribution. ``inf`` or ``None`` disables per-gene variability.
        dropout_present: Whether to simulate dropout.
        dropout_mid: Midpoint of the dropout logistic function.
        dropout_shape: Shape of the dropout logistic function.
    """

    ngenes: Optional[int] = 10000
    ncells: Optional[int] = 100
    seed: int = 757578
    group_prob: Sequence[float] = (1.0,)
    mean_shape: Optional[float] = 0.6
    mean_rate: Optional[float] = 0.3
    lib_loc: Optional[float] = 11.0
    lib_scale: Optional[float] = 0.2
    out_prob: Optional[float] = 0.05
    out_fac_loc: Optional[float] = 4.0
    out_fac_scale: Optional[float] = 0.5
    de_prob: float = 0.1
    de_down_prob: float = 0.1
    de_fac_loc: float = 0.1
    de_fac_scale: float = 0.4
    bcv_common: Optional[float] = 0.1
    bcv_df: Optional[float] = 60.0
    dropout_present: bool = False
    dropout_mid: Optional[float] = 0.0
    dropout_shape: Optional[float] = -1.0

    def __post_init__(self) -> None:
        """Validate parameters."""
        # Normalise group_prob so the frozen object stays hashable
        try:
            group_prob = tuple(float(p) for p in self.group_prob)
        except (TypeError, ValueError) as e:
            raise ParameterDomainError(
                "group_prob", self.group_prob, "must be a sequence of numbers"
            ) from e
        object.__setattr__(self, "group_prob", group_prob)
        self._validate()

    @property
    def ngroups(self) -> int:
        """Number of cell groups."""
        return len(self.group_prob)

    def _validate(self) -> None:
        """Check every set parameter against its domain."""
        for name in ("ngenes", "ncells"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
                raise ParameterDomainError(name, value, "must be a positive integer")
        if isinstance(self.seed, bool) or not isinstance(self.seed, numbers.Integral) or self.seed < 0:
            raise ParameterDomainError("seed", self.seed, "must be a non-negative integer")

        # Strictly positive
        for name in ("mean_shape", "mean_rate", "bcv_common"):
            value = getattr(self, name)
            if value is not None and not (_is_real(value) and 0 < value < math.inf):
                raise ParameterDomainError(name, value, "must be positive")

        # Non-negative
        for name in ("lib_scale", "out_fac_scale", "de_fac_scale"):
            value = getattr(self, name)
            if value is not None and not (_is_real(value) and 0 <= value < math.inf):
                raise ParameterDomainError(name, value, "must be non-negative")

        # Probabilities
        for name in ("out_prob", "de_prob", "de_down_prob"):
            value = getattr(self, name)
            if value is not None and not (_is_real(value) and 0 <= value <= 1):
                raise ParameterDomainError(name, value, "must be between 0 and 1")

        # Locations and logistic parameters can take any finite value
        for name in ("lib_loc", "out_fac_loc", "de_fac_loc", "dropout_mid", "dropout_shape"):
            value = getattr(self, name)
            if value is not None and not (_is_real(value) and math.isfinite(value)):
                raise ParameterDomainError(name, value, "must be finite")

        if self.bcv_df is not None and not (_is_real(self.bcv_df) and self.bcv_df > 0):
            raise ParameterDomainError("bcv_df", self.bcv_df, "must be positive or inf")

        if not isinstance(self.dropout_present, bool):
            raise ParameterDomainError(
                "dropout_present", self.dropout_present, "must be a boolean"
            )

        if len(self.group_prob) == 0:
            raise ParameterDomainError("group_prob", self.group_prob, "must not be empty")
        if any(not (0 <= p <= 1) for p in self.group_prob):
            raise ParameterDomainError(
                "group_prob", self.group_prob, "values must be between 0 and 1"
            )
        if abs(sum(self.group_prob) - 1.0) > 1e-6:
            raise ParameterDomainError("group_prob", self.group_prob, "must sum to 1")

    def update(self, **changes: Any) -> Self:
        """Return a copy with the given parameters replaced.

        Raises:
            InvalidInputError: If a name is not a Splat parameter.
            ParameterDomainError: If a value is outside its domain.
        """
        unknown = sorted(set(changes) - _FIELD_NAMES)
        if unknown:
            raise InvalidInputError(f"Unknown Splat parameters: {', '.join(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Return the parameters as a plain dictionary."""
        out = asdict(self)
        out["group_prob"] = list(self.group_prob)
        return out

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> Self:
        """Build parameters from a mapping produced by :meth:`to_dict`."""
        unknown = sorted(set(values) - _FIELD_NAMES)
        if unknown:
            raise InvalidInputError(f"Unknown Splat parameters: {', '.join(unknown)}")
        return cls(**values)


_FIELD_NAMES = frozenset(f.name for f in fields(SplatParams))


def _is_real(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def new_params(**changes: Any) -> SplatParams:
    """Create a SplatParams object with default values.

    Args:
        **changes: Parameters to set instead of the defaults.
    """
    return SplatParams().update(**changes)


def set_params(params: SplatParams, **changes: Any) -> SplatParams:
    """Return a copy of ``params`` with the given parameters replaced."""
    if not isinstance(params, SplatParams):
        raise InvalidInputError(
            f"params must be a SplatParams object, got {type(params).__name__}"
        )
    return params.update(**changes)
