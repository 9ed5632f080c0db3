"""
Quality checks for the bronze and silver layers.

Every cleansing rule of the silver stages is restated here as a read-only
predicate returning the rows that break it. Each check runs against both layers:
on bronze it profiles the issues the stages have to fix, on silver it is an
acceptance gate expected to return no rows.

Checks of kind ``profile`` are informational only (distinct-value listings,
orphan reports) and never fail.

Predicates receive two mappings of table name to DataFrame: the tables of the
layer being checked, and the silver tables used as reference for
cross-entity checks.
"""

from dataclasses import dataclass
from typing import Callable, List, Mapping, Tuple

from pyspark.sql import Column, DataFrame
from pyspark.sql.functions import (
    col,
    count,
    current_date,
    date_format,
    length,
    lit,
    regexp_replace,
    to_date,
    trim,
)
from pyspark.sql.types import DateType

from etl.common.etl_utils import find_unmatched_keys
from config import SALES_DATE_MIN, SALES_DATE_MAX, MIN_PLAUSIBLE_BIRTH_DATE

ACCEPTANCE = "acceptance"
PROFILE = "profile"

LAYERS = ("bronze", "silver")

Tables = Mapping[str, DataFrame]
Predicate = Callable[[Tables, Tables], DataFrame]


@dataclass(frozen=True)
class QualityCheck:
    """A named predicate selecting the rows of a table that break one rule."""

    name: str
    table: str
    family: str
    kind: str
    description: str
    predicate: Predicate
    reference_tables: Tuple[str, ...] = ()
    layers: Tuple[str, ...] = LAYERS

    def find_violations(self, tables: Tables, reference: Tables) -> DataFrame:
        return self.predicate(tables, reference)


# Predicate builders


def null_or_duplicate_keys(table: str, key: str) -> Predicate:
    def predicate(tables: Tables, reference: Tables) -> DataFrame:
        return (
            tables[table]
            .groupBy(key)
            .agg(count(lit(1)).alias("record_count"))
            .where((col("record_count") > 1) | col(key).isNull())
        )

    return predicate


def untrimmed(table: str, *columns: str) -> Predicate:
    def predicate(tables: Tables, reference: Tables) -> DataFrame:
        condition = None
        for name in columns:
            column_check = col(name) != trim(col(name))
            condition = column_check if condition is None else condition | column_check
        return tables[table].where(condition).select(*columns)

    return predicate


def distinct_values(table: str, column: str) -> Predicate:
    def predicate(tables: Tables, reference: Tables) -> DataFrame:
        return tables[table].select(column).distinct()

    return predicate


def yyyymmdd(df: DataFrame, name: str) -> Column:
    """Integer YYYYMMDD form of a date column, whether stored as DATE or as integer."""
    if isinstance(df.schema[name].dataType, DateType):
        return date_format(col(name), "yyyyMMdd").cast("int")
    return col(name).cast("int")


def invalid_sales_date(name: str) -> Predicate:
    def predicate(tables: Tables, reference: Tables) -> DataFrame:
        sales = tables["crm_sales_details"]
        date_key = yyyymmdd(sales, name)
        return sales.where(
            (date_key <= 0)
            | (length(date_key.cast("string")) != 8)
            | (date_key > SALES_DATE_MAX)
            | (date_key < SALES_DATE_MIN)
        ).select(name)

    return predicate


def unmatched_reference(
    table: str, key: str, reference_table: str, reference_key: str
) -> Predicate:
    def predicate(tables: Tables, reference: Tables) -> DataFrame:
        return find_unmatched_keys(
            tables[table], key, reference[reference_table], reference_key
        )

    return predicate


# Entity specific predicates


def negative_or_missing_cost(tables: Tables, reference: Tables) -> DataFrame:
    return (
        tables["crm_prd_info"]
        .where(col("prd_cost").isNull() | (col("prd_cost") < 0))
        .select("prd_id", "prd_cost")
    )


def product_end_before_start(tables: Tables, reference: Tables) -> DataFrame:
    return tables["crm_prd_info"].where(col("prd_end_dt") < col("prd_start_dt"))


def sales_out_of_chronology(tables: Tables, reference: Tables) -> DataFrame:
    order_dt, ship_dt, due_dt = col("sls_order_dt"), col("sls_ship_dt"), col("sls_due_dt")
    return tables["crm_sales_details"].where(
        (order_dt > ship_dt) | (order_dt > due_dt) | (ship_dt >= due_dt)
    )


def sales_measure_mismatch(tables: Tables, reference: Tables) -> DataFrame:
    sales, quantity, price = col("sls_sales"), col("sls_quantity"), col("sls_price")
    # Zero quantity conforms to zero sales with no price
    zero_quantity_sale = (
        quantity.eqNullSafe(0) & sales.eqNullSafe(0) & price.isNull()
    )
    return (
        tables["crm_sales_details"]
        .where(~zero_quantity_sale)
        .where(
            sales.isNull()
            | quantity.isNull()
            | price.isNull()
            | (sales <= 0)
            | (quantity <= 0)
            | (price <= 0)
            | (sales != quantity * price)
        )
        .select(sales, quantity, price)
        .distinct()
    )


def future_birth_date(tables: Tables, reference: Tables) -> DataFrame:
    return (
        tables["erp_cust_az12"]
        .where(col("bdate") > current_date())
        .select("bdate")
        .distinct()
    )


def implausible_birth_date(tables: Tables, reference: Tables) -> DataFrame:
    return (
        tables["erp_cust_az12"]
        .where(col("bdate") < to_date(lit(MIN_PLAUSIBLE_BIRTH_DATE)))
        .select("bdate")
        .distinct()
    )


def prefixed_demographic_id(tables: Tables, reference: Tables) -> DataFrame:
    return tables["erp_cust_az12"].where(col("cid").startswith("NAS")).select("cid")


def unlinked_location(tables: Tables, reference: Tables) -> DataFrame:
    locations = tables["erp_loc_a101"].withColumn(
        "cid", regexp_replace(col("cid"), "-", "")
    )
    return find_unmatched_keys(
        locations, "cid", reference["crm_cust_info"], "cst_key"
    ).select("cid", "cntry")


def blank_country(tables: Tables, reference: Tables) -> DataFrame:
    country = col("cntry")
    return (
        tables["erp_loc_a101"]
        .where(country.isNull() | (trim(country) == "") | (country != trim(country)))
        .select("cid", "cntry")
    )


QUALITY_CHECKS: List[QualityCheck] = [
    # CRM customers
    QualityCheck(
        name="customers_null_or_duplicate_id",
        table="crm_cust_info",
        family="identity",
        kind=ACCEPTANCE,
        description="Customer ids must be present and unique",
        predicate=null_or_duplicate_keys("crm_cust_info", "cst_id"),
    ),
    QualityCheck(
        name="customers_untrimmed_first_name",
        table="crm_cust_info",
        family="text_hygiene",
        kind=ACCEPTANCE,
        description="First names have no leading or trailing spaces",
        predicate=untrimmed("crm_cust_info", "cst_firstname"),
    ),
    QualityCheck(
        name="customers_untrimmed_last_name",
        table="crm_cust_info",
        family="text_hygiene",
        kind=ACCEPTANCE,
        description="Last names have no leading or trailing spaces",
        predicate=untrimmed("crm_cust_info", "cst_lastname"),
    ),
    QualityCheck(
        name="customers_gender_values",
        table="crm_cust_info",
        family="value_domain",
        kind=PROFILE,
        description="Distinct customer gender values",
        predicate=distinct_values("crm_cust_info", "cst_gndr"),
    ),
    QualityCheck(
        name="customers_marital_status_values",
        table="crm_cust_info",
        family="value_domain",
        kind=PROFILE,
        description="Distinct customer marital status values",
        predicate=distinct_values("crm_cust_info", "cst_marital_status"),
    ),
    # CRM products
    QualityCheck(
        name="products_null_or_duplicate_id",
        table="crm_prd_info",
        family="identity",
        kind=ACCEPTANCE,
        description="Product ids must be present and unique",
        predicate=null_or_duplicate_keys("crm_prd_info", "prd_id"),
    ),
    QualityCheck(
        name="products_untrimmed_name",
        table="crm_prd_info",
        family="text_hygiene",
        kind=ACCEPTANCE,
        description="Product names have no leading or trailing spaces",
        predicate=untrimmed("crm_prd_info", "prd_nm"),
    ),
    QualityCheck(
        name="products_null_or_negative_cost",
        table="crm_prd_info",
        family="value_domain",
        kind=ACCEPTANCE,
        description="Product costs are present and not negative",
        predicate=negative_or_missing_cost,
    ),
    QualityCheck(
        name="products_line_values",
        table="crm_prd_info",
        family="value_domain",
        kind=PROFILE,
        description="Distinct product line values",
        predicate=distinct_values("crm_prd_info", "prd_line"),
    ),
    QualityCheck(
        name="products_end_before_start",
        table="crm_prd_info",
        family="derived_fields",
        kind=ACCEPTANCE,
        description="Product validity intervals do not end before they start",
        predicate=product_end_before_start,
    ),
    # CRM sales
    QualityCheck(
        name="sales_untrimmed_order_number",
        table="crm_sales_details",
        family="text_hygiene",
        kind=ACCEPTANCE,
        description="Order numbers have no leading or trailing spaces",
        predicate=untrimmed("crm_sales_details", "sls_ord_num"),
    ),
    QualityCheck(
        name="sales_unknown_product_key",
        table="crm_sales_details",
        family="referential",
        kind=ACCEPTANCE,
        description="Sales reference products present in the silver layer",
        predicate=unmatched_reference(
            "crm_sales_details", "sls_prd_key", "crm_prd_info", "prd_key"
        ),
        reference_tables=("crm_prd_info",),
    ),
    QualityCheck(
        name="sales_unknown_customer_id",
        table="crm_sales_details",
        family="referential",
        kind=ACCEPTANCE,
        description="Sales reference customers present in the silver layer",
        predicate=unmatched_reference(
            "crm_sales_details", "sls_cust_id", "crm_cust_info", "cst_id"
        ),
        reference_tables=("crm_cust_info",),
    ),
    QualityCheck(
        name="sales_invalid_order_date",
        table="crm_sales_details",
        family="value_domain",
        kind=ACCEPTANCE,
        description="Order dates are valid YYYYMMDD dates within range",
        predicate=invalid_sales_date("sls_order_dt"),
    ),
    QualityCheck(
        name="sales_invalid_ship_date",
        table="crm_sales_details",
        family="value_domain",
        kind=ACCEPTANCE,
        description="Ship dates are valid YYYYMMDD dates within range",
        predicate=invalid_sales_date("sls_ship_dt"),
    ),
    QualityCheck(
        name="sales_invalid_due_date",
        table="crm_sales_details",
        family="value_domain",
        kind=ACCEPTANCE,
        description="Due dates are valid YYYYMMDD dates within range",
        predicate=invalid_sales_date("sls_due_dt"),
    ),
    QualityCheck(
        name="sales_date_chronology",
        table="crm_sales_details",
        family="chronology",
        kind=ACCEPTANCE,
        description="Orders are placed no later than shipped, and shipped before due",
        predicate=sales_out_of_chronology,
    ),
    QualityCheck(
        name="sales_measure_mismatch",
        table="crm_sales_details",
        family="derived_fields",
        kind=ACCEPTANCE,
        description=(
            "Sales, quantity and price are positive and sales = quantity * price,"
            " except zero-quantity rows with zero sales and no price"
        ),
        predicate=sales_measure_mismatch,
    ),
    # ERP customer demographics
    QualityCheck(
        name="demographics_future_birth_date",
        table="erp_cust_az12",
        family="value_domain",
        kind=ACCEPTANCE,
        description="Birth dates are not in the future",
        predicate=future_birth_date,
    ),
    QualityCheck(
        name="demographics_implausible_birth_date",
        table="erp_cust_az12",
        family="value_domain",
        kind=PROFILE,
        description=f"Birth dates before {MIN_PLAUSIBLE_BIRTH_DATE}",
        predicate=implausible_birth_date,
    ),
    QualityCheck(
        name="demographics_prefixed_id",
        table="erp_cust_az12",
        family="identity",
        kind=ACCEPTANCE,
        description="Customer ids carry no source-system prefix",
        predicate=prefixed_demographic_id,
    ),
    QualityCheck(
        name="demographics_gender_values",
        table="erp_cust_az12",
        family="value_domain",
        kind=PROFILE,
        description="Distinct ERP gender values",
        predicate=distinct_values("erp_cust_az12", "gen"),
    ),
    # ERP customer locations
    QualityCheck(
        name="locations_unlinked_customer",
        table="erp_loc_a101",
        family="referential",
        kind=PROFILE,
        description="Locations whose customer id matches no silver customer key",
        predicate=unlinked_location,
        reference_tables=("crm_cust_info",),
    ),
    QualityCheck(
        name="locations_blank_country",
        table="erp_loc_a101",
        family="text_hygiene",
        kind=ACCEPTANCE,
        description="Countries are present and trimmed",
        predicate=blank_country,
    ),
    QualityCheck(
        name="locations_country_values",
        table="erp_loc_a101",
        family="value_domain",
        kind=PROFILE,
        description="Distinct country values",
        predicate=distinct_values("erp_loc_a101", "cntry"),
    ),
    # ERP product categories
    QualityCheck(
        name="categories_unlinked_id",
        table="erp_px_cat_g1v2",
        family="referential",
        kind=PROFILE,
        description="Categories used by no silver product",
        predicate=unmatched_reference("erp_px_cat_g1v2", "id", "crm_prd_info", "cat_id"),
        reference_tables=("crm_prd_info",),
    ),
    QualityCheck(
        name="categories_untrimmed_values",
        table="erp_px_cat_g1v2",
        family="text_hygiene",
        kind=PROFILE,
        description="Category values with leading or trailing spaces",
        predicate=untrimmed("erp_px_cat_g1v2", "cat", "subcat", "maintenance"),
    ),
    QualityCheck(
        name="categories_maintenance_values",
        table="erp_px_cat_g1v2",
        family="value_domain",
        kind=PROFILE,
        description="Distinct maintenance flag values",
        predicate=distinct_values("erp_px_cat_g1v2", "maintenance"),
    ),
]


def get_checks(layer: str, table: str = None) -> List[QualityCheck]:
    """
    Select the checks that apply to a layer, optionally for one table.

    Args:
        layer: Data layer (bronze, silver)
        table: Optional table name

    Returns:
        List[QualityCheck]: Checks in their fixed order
    """
    if layer not in LAYERS:
        raise ValueError(f"Unknown layer: {layer}. Expected one of {LAYERS}")

    return [
        check
        for check in QUALITY_CHECKS
        if layer in check.layers and (table is None or check.table == table)
    ]
