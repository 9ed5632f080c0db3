"""
Tests for the code-to-label mapping tables.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from pyspark.sql.functions import col

from etl.common.code_mappings import (
    CODE_MAPPINGS,
    COUNTRY,
    CRM_GENDER,
    ERP_GENDER,
    MARITAL_STATUS,
    NOT_AVAILABLE,
    PRODUCT_LINE,
)


def _apply(spark, mapping, codes):
    df = spark.createDataFrame([(code,) for code in codes], "code string")
    rows = df.select(col("code"), mapping.apply(col("code")).alias("label")).collect()
    return {row["code"]: row["label"] for row in rows}


@pytest.mark.parametrize(
    "mapping, code, label",
    [
        (MARITAL_STATUS, "S", "Single"),
        (MARITAL_STATUS, " m ", "Married"),
        (MARITAL_STATUS, "D", NOT_AVAILABLE),
        (CRM_GENDER, "f", "Female"),
        (CRM_GENDER, "Female", NOT_AVAILABLE),
        (ERP_GENDER, "Female", "Female"),
        (ERP_GENDER, "MALE ", "Male"),
        (PRODUCT_LINE, "T", "Touring"),
        (PRODUCT_LINE, None, NOT_AVAILABLE),
        (COUNTRY, "DE", "Germany"),
        (COUNTRY, "usa", "United States"),
        (COUNTRY, "  ", NOT_AVAILABLE),
        (COUNTRY, " Australia ", "Australia"),
    ],
)
def test_apply(spark_session, mapping, code, label):
    assert _apply(spark_session, mapping, [code])[code] == label


def test_vocabulary_includes_fallback():
    assert CRM_GENDER.vocabulary == {"Female", "Male", NOT_AVAILABLE}
    assert PRODUCT_LINE.vocabulary == {
        "Mountain",
        "Road",
        "Sales",
        "Touring",
        NOT_AVAILABLE,
    }


def test_registry_holds_every_mapping():
    assert set(CODE_MAPPINGS) == {
        "marital_status",
        "crm_gender",
        "erp_gender",
        "product_line",
        "country",
    }


@pytest.mark.parametrize(
    "mapping",
    [mapping for mapping in CODE_MAPPINGS.values() if not mapping.keep_unmapped],
    ids=lambda mapping: mapping.name,
)
def test_labels_stay_in_vocabulary(spark_session, mapping):
    codes = list(mapping.labels) + [code.lower() for code in mapping.labels]
    codes += [None, "", "  ", "zz", " zz "]

    labels = _apply(spark_session, mapping, codes)

    assert set(labels.values()) <= mapping.vocabulary
    for code, label in mapping.labels.items():
        assert labels[code] == label
        assert labels[code.lower()] == label


def test_country_keeps_unmapped_names_trimmed(spark_session):
    labels = _apply(spark_session, COUNTRY, ["Germany ", " Spain", "us", None])

    assert labels == {
        "Germany ": "Germany",
        " Spain": "Spain",
        "us": "United States",
        None: NOT_AVAILABLE,
    }
