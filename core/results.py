"""
Result schema validation and the indexed neighbor graph.

Raw local-statistic records are validated once per dataset load. Records
failing validation stay addressable by id but are excluded from every
aggregate computed over valid results.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, FiniteFloat, ValidationError

logger = logging.getLogger(__name__)

ResultId = Union[str, int]
DensityPoints = List[Tuple[float, float]]


class ResultRecord(BaseModel):
    """Schema for one spatial unit's statistic bundle."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: ResultId
    z: FiniteFloat
    lag: FiniteFloat
    statistic: FiniteFloat
    lower_cutoff: Optional[FiniteFloat] = Field(
        default=None, validation_alias=AliasChoices("lowerCutoff", "lower_cutoff")
    )
    upper_cutoff: Optional[FiniteFloat] = Field(
        default=None, validation_alias=AliasChoices("upperCutoff", "upper_cutoff")
    )
    permutation_distribution: Optional[List[Tuple[FiniteFloat, FiniteFloat]]] = Field(
        default=None,
        validation_alias=AliasChoices("permutationDistribution", "permutation_distribution"),
    )
    neighbor_weights: List[Tuple[ResultId, FiniteFloat]] = Field(
        validation_alias=AliasChoices("neighborWeights", "neighbor_weights", "neighbors")
    )
    label: Optional[str] = None


@dataclass
class Result:
    """A result as stored in the graph, valid or not."""

    id: ResultId
    valid: bool
    z: Optional[float] = None
    lag: Optional[float] = None
    statistic: Optional[float] = None
    lower_cutoff: Optional[float] = None
    upper_cutoff: Optional[float] = None
    permutation_distribution: Optional[DensityPoints] = None
    neighbor_weights: List[Tuple[ResultId, float]] = field(default_factory=list)
    label: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def has_cutoffs(self) -> bool:
        return self.valid and self.lower_cutoff is not None and self.upper_cutoff is not None

    @property
    def has_distribution(self) -> bool:
        return self.valid and bool(self.permutation_distribution)

    @classmethod
    def from_record(cls, record: ResultRecord, raw: Dict[str, Any]) -> "Result":
        return cls(
            id=record.id,
            valid=True,
            z=record.z,
            lag=record.lag,
            statistic=record.statistic,
            lower_cutoff=record.lower_cutoff,
            upper_cutoff=record.upper_cutoff,
            permutation_distribution=(
                [(float(x), float(y)) for x, y in record.permutation_distribution]
                if record.permutation_distribution is not None
                else None
            ),
            neighbor_weights=[(nid, float(w)) for nid, w in record.neighbor_weights],
            label=record.label,
            raw=raw,
        )


class NeighborSlot(NamedTuple):
    """One resolved neighbor edge; ``result`` is None for a dangling id."""

    id: ResultId
    result: Optional[Result]
    weight: float


class ResultGraph:
    """Read-only id index over results and their weighted neighbor edges.

    Built once per dataset load and replaced wholesale on new data.
    """

    def __init__(self, results: Optional[Iterable[Result]] = None):
        self._results: Dict[ResultId, Result] = {}
        for result in results or []:
            if result.id in self._results:
                logger.warning("Duplicate result id %r, keeping the first record", result.id)
                continue
            self._results[result.id] = result
        self._valid = [r for r in self._results.values() if r.valid]

    @classmethod
    def build(cls, raw_results: Any) -> "ResultGraph":
        """
        Validate raw records and index them by id.

        Args:
            raw_results: Iterable of mappings matching the result schema

        Returns:
            ResultGraph; empty when the input is not a collection of records
        """
        if raw_results is None or isinstance(raw_results, (str, bytes, dict)):
            logger.warning("Result input is not a collection of records, building empty graph")
            return cls()
        try:
            records = list(raw_results)
        except TypeError:
            logger.warning("Result input is not iterable, building empty graph")
            return cls()

        results: List[Result] = []
        invalid = 0
        for raw in records:
            if not isinstance(raw, dict):
                invalid += 1
                continue
            result_id = raw.get("id")
            if result_id is None or isinstance(result_id, (bool, float, list, dict)):
                invalid += 1
                continue
            try:
                record = ResultRecord.model_validate(raw)
            except ValidationError as exc:
                invalid += 1
                logger.debug("Result %r failed validation: %s", result_id, exc.errors())
                results.append(cls._partial(result_id, raw))
                continue
            results.append(Result.from_record(record, raw))

        if invalid:
            logger.info("%d of %d result records failed validation", invalid, len(records))
        return cls(results)

    @staticmethod
    def _partial(result_id: ResultId, raw: Dict[str, Any]) -> Result:
        """Keep whatever plain numbers an invalid record carries."""

        def number(key: str) -> Optional[float]:
            value = raw.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
                return float(value)
            return None

        label = raw.get("label")
        return Result(
            id=result_id,
            valid=False,
            z=number("z"),
            lag=number("lag"),
            statistic=number("statistic"),
            label=label if isinstance(label, str) else None,
            raw=raw,
        )

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, result_id: object) -> bool:
        try:
            return result_id in self._results
        except TypeError:
            return False

    def __iter__(self):
        return iter(self._results.values())

    @property
    def ids(self) -> List[ResultId]:
        return list(self._results)

    def get(self, result_id: Optional[ResultId]) -> Optional[Result]:
        if result_id is None:
            return None
        try:
            return self._results.get(result_id)
        except TypeError:
            return None

    def neighbors_of(self, result_id: Optional[ResultId]) -> List[NeighborSlot]:
        """Resolve neighbor edges in order, keeping dangling ids as empty slots."""
        result = self.get(result_id)
        if result is None:
            return []
        slots = []
        for neighbor_id, weight in result.neighbor_weights:
            neighbor = self.get(neighbor_id)
            if neighbor is None:
                logger.debug("Result %r references unknown neighbor %r", result_id, neighbor_id)
            slots.append(NeighborSlot(neighbor_id, neighbor, weight))
        return slots

    def valid_subset(self) -> List[Result]:
        return list(self._valid)

    def z_extent(self) -> Optional[Tuple[float, float]]:
        return _extent(r.z for r in self._valid)

    def lag_extent(self) -> Optional[Tuple[float, float]]:
        return _extent(r.lag for r in self._valid)

    def to_frame(self) -> pd.DataFrame:
        """Tabular view of the valid results for aggregates and plotting."""
        columns = ["id", "z", "lag", "statistic", "label", "lower_cutoff", "upper_cutoff", "neighbor_count"]
        rows = [
            {
                "id": r.id,
                "z": r.z,
                "lag": r.lag,
                "statistic": r.statistic,
                "label": r.label,
                "lower_cutoff": r.lower_cutoff,
                "upper_cutoff": r.upper_cutoff,
                "neighbor_count": len(r.neighbor_weights),
            }
            for r in self._valid
        ]
        return pd.DataFrame(rows, columns=columns)


def lag_cutoffs(result: Optional[Result]) -> Optional[Tuple[float, float]]:
    """Cutoffs re-expressed on the lag axis (divided by z), sorted ascending.

    Raw cutoffs may arrive in either order, so they are always sorted
    before axis placement.
    """
    if result is None or not result.has_cutoffs or not result.z:
        return None
    low, high = sorted((result.lower_cutoff / result.z, result.upper_cutoff / result.z))
    return low, high


def _extent(values: Iterable[Optional[float]]) -> Optional[Tuple[float, float]]:
    finite = [v for v in values if v is not None and math.isfinite(v)]
    if not finite:
        return None
    return min(finite), max(finite)
