"""
Code-to-label mapping tables for the CRM/ERP lakehouse.

Every coded source field (marital status, gender, product line, country) is
normalized through one of the mapping tables below. Codes are looked up after
trimming and upper-casing, and anything that is not mapped, blank or NULL
becomes ``n/a``. Country is the only field whose unmapped values are kept
(trimmed), since the source mostly carries full country names already.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet

from pyspark.sql import Column
from pyspark.sql.functions import lit, trim, upper, when

NOT_AVAILABLE = "n/a"


@dataclass(frozen=True)
class CodeMapping:
    """A declarative lookup from source codes to human-readable labels."""

    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    keep_unmapped: bool = False

    @property
    def vocabulary(self) -> FrozenSet[str]:
        """Labels a mapped column may hold (unmapped values aside)."""
        return frozenset(self.labels.values()) | {NOT_AVAILABLE}

    def apply(self, column: Column) -> Column:
        """
        Build the Spark expression normalizing a coded column.

        Args:
            column: Column holding the raw code

        Returns:
            Column: Expression yielding the mapped label
        """
        normalized = upper(trim(column))

        mapping_expr = when(column.isNull() | (trim(column) == ""), lit(NOT_AVAILABLE))
        for code, label in self.labels.items():
            mapping_expr = mapping_expr.when(normalized == code, lit(label))

        if self.keep_unmapped:
            return mapping_expr.otherwise(trim(column))
        return mapping_expr.otherwise(lit(NOT_AVAILABLE))


MARITAL_STATUS = CodeMapping(
    name="marital_status",
    labels={"S": "Single", "M": "Married"},
)

# CRM customers carry single-letter gender codes
CRM_GENDER = CodeMapping(
    name="crm_gender",
    labels={"F": "Female", "M": "Male"},
)

# ERP demographics mix letters with spelled-out values
ERP_GENDER = CodeMapping(
    name="erp_gender",
    labels={"F": "Female", "FEMALE": "Female", "M": "Male", "MALE": "Male"},
)

PRODUCT_LINE = CodeMapping(
    name="product_line",
    labels={"M": "Mountain", "R": "Road", "S": "Sales", "T": "Touring"},
)

COUNTRY = CodeMapping(
    name="country",
    labels={
        "DE": "Germany",
        "US": "United States",
        "USA": "United States",
        "AU": "Australia",
        "CA": "Canada",
        "FR": "France",
        "GB": "United Kingdom",
        "UK": "United Kingdom",
    },
    keep_unmapped=True,
)

CODE_MAPPINGS = {
    mapping.name: mapping
    for mapping in (MARITAL_STATUS, CRM_GENDER, ERP_GENDER, PRODUCT_LINE, COUNTRY)
}
