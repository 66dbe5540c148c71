# Copyright 2024-present Kensho Technologies, LLC.
"""Negotiate with the host which constraints of a scan become GraphQL variables."""
from dataclasses import dataclass
from enum import Enum, unique
import logging
from typing import Iterable, List, Optional, Sequence, Set

from dataclasses_json import DataClassJsonMixin

from .config import TableConfig
from .exceptions import PlanDecodeError


logger = logging.getLogger(__name__)

# A scan costs a full network round trip, regardless of the constraints used.
SCAN_ESTIMATED_COST = 1_000_000.0

# Hosts with a 64-bit column usage mask (e.g. SQLite) set this bit when any column at this
# position or after it is used, since those columns do not have a bit of their own.
COLUMN_USED_OVERFLOW_BIT = 63


@unique
class ConstraintOperator(Enum):
    """Operators of the constraints a host may offer to a virtual table."""

    EQ = "="
    GT = ">"
    LE = "<="
    LT = "<"
    GE = ">="
    NE = "!="
    MATCH = "MATCH"
    LIKE = "LIKE"
    GLOB = "GLOB"
    REGEXP = "REGEXP"
    IS = "IS"
    IS_NOT = "IS NOT"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"
    LIMIT = "LIMIT"
    OFFSET = "OFFSET"


@dataclass(frozen=True)
class Constraint:
    """A constraint the host offers to apply through the virtual table rather than by itself."""

    # Index of the constrained column in the table's schema.
    column: int

    op: ConstraintOperator

    # False if the host cannot supply the constraint's value for this particular plan.
    usable: bool = True


@dataclass(frozen=True)
class ParameterDetail(DataClassJsonMixin):
    """The column targeted by one argument of a scan."""

    col: int


@dataclass(frozen=True)
class ScanPlan(DataClassJsonMixin):
    """How to execute a scan, decided at planning time and handed back by the host verbatim."""

    # For each argument of the scan, in argument order, the variable column it binds.
    params: List[ParameterDetail]

    # Bit i is set if result column i is read by the host.
    col_used: int

    def is_result_column_used(self, column_index: int) -> bool:
        """Return True if the host reads the given result column."""
        return bool((self.col_used >> column_index) & 1)

    @classmethod
    def decode(cls, idx_str: Optional[str]) -> "ScanPlan":
        """Return the plan serialized in the given opaque string.

        A host that did not pick any plan passes no string at all. Such a scan binds no
        variables and reads every result column.
        """
        if idx_str is None:
            return cls(params=[], col_used=-1)

        try:
            plan = cls.from_json(idx_str)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise PlanDecodeError(
                "Could not decode the scan plan {}: {}".format(repr(idx_str), e)
            ) from e

        # Fields missing from the string are decoded as None.
        if (
            not isinstance(plan.col_used, int)
            or not isinstance(plan.params, list)
            or not all(
                isinstance(param, ParameterDetail) and isinstance(param.col, int)
                for param in plan.params
            )
        ):
            raise PlanDecodeError("Scan plan has unexpected field types: {}".format(idx_str))
        return plan

    def encode(self) -> str:
        """Return the opaque string representation of the plan."""
        return self.to_json()


@dataclass(frozen=True)
class ConstraintUsage:
    """How a virtual table uses one of the constraints offered by the host."""

    # 1-based position of the constraint's value among the scan arguments, or None if unused.
    argv_index: Optional[int]

    # True if the host does not need to double-check the constraint on the produced rows.
    omit: bool


@dataclass(frozen=True)
class IndexInfo:
    """The answer to the host's planning request."""

    plan: ScanPlan

    # The plan, serialized. The host passes it back verbatim when executing the scan.
    idx_str: str

    # One entry per offered constraint, in the order they were offered.
    constraint_usage: List[ConstraintUsage]

    estimated_cost: float


def get_columns_used_mask(column_indices: Iterable[int]) -> int:
    """Return the column usage bitset with the bits of the given column indices set."""
    mask = 0
    for column_index in column_indices:
        mask |= 1 << column_index
    return mask


def _get_result_columns_used(col_used: int, result_column_count: int) -> int:
    """Restrict the host's column usage bitset to the result columns."""
    if col_used < 0:
        # All bits set.
        return (1 << result_column_count) - 1

    if result_column_count > COLUMN_USED_OVERFLOW_BIT and (
        col_used >> COLUMN_USED_OVERFLOW_BIT
    ) & 1:
        col_used |= ((1 << result_column_count) - 1) ^ ((1 << COLUMN_USED_OVERFLOW_BIT) - 1)

    return col_used & ((1 << result_column_count) - 1)


def plan_scan(config: TableConfig, constraints: Sequence[Constraint], col_used: int) -> IndexInfo:
    """Decide which constraints to apply as GraphQL variables, and which fields to request.

    A constraint is applied when it is an equality on a variable column. Equalities on result
    columns and any other operator are left to the host. If multiple equalities constrain the
    same variable, only the first one binds the variable and the rest are left to the host.

    Args:
        config: configuration of the table being scanned
        constraints: constraints offered by the host, in the host's order
        col_used: bitset of the columns the host reads; bit i is set if column i is read

    Returns:
        IndexInfo with the plan of the scan and the usage of each offered constraint
    """
    result_column_count = config.result_column_count
    column_count = len(config.columns)

    params: List[ParameterDetail] = []
    constraint_usage: List[ConstraintUsage] = []
    bound_columns: Set[int] = set()
    for constraint in constraints:
        is_used = (
            constraint.usable
            and constraint.op == ConstraintOperator.EQ
            and result_column_count <= constraint.column < column_count
            and constraint.column not in bound_columns
        )
        if is_used:
            params.append(ParameterDetail(col=constraint.column))
            bound_columns.add(constraint.column)
            constraint_usage.append(ConstraintUsage(argv_index=len(params), omit=True))
        else:
            constraint_usage.append(ConstraintUsage(argv_index=None, omit=False))

    plan = ScanPlan(params=params, col_used=_get_result_columns_used(col_used, result_column_count))
    logger.debug(
        "Planned scan of %(operation_name)s with %(param_count)s bound variables out of "
        "%(constraint_count)s offered constraints.",
        {
            "operation_name": config.operation_name,
            "param_count": len(params),
            "constraint_count": len(constraints),
        },
    )

    return IndexInfo(
        plan=plan,
        idx_str=plan.encode(),
        constraint_usage=constraint_usage,
        estimated_cost=SCAN_ESTIMATED_COST,
    )
