"""Budget flow core: jurisdiction discovery, record loading and Sankey graphs."""

# Errors
from budget.errors import BudgetDataError, DataNotFound, DataValidationError, NotFound

# Data sources
from budget.datasource import (
    DataSource,
    FileDataSource,
    InMemoryDataSource,
    get_default_source,
    set_default_source,
)

# Registry and year resolution
from budget.registry import list_municipalities_by_province, list_provinces
from budget.years import (
    get_available_years,
    get_available_years_for_jurisdiction,
    get_latest_year_for_jurisdiction,
    resolve_jurisdiction_path,
)

# Trees and graphs
from budget.departments import expand_departments, parse_department_tree
from budget.sankey import BucketingConfig, build_sankey

# Loader
from budget.loader import (
    get_department_data,
    get_expanded_departments,
    get_file_last_modified,
    get_jurisdiction_data,
    list_departments,
)

# First Nations
from budget.claims import Claim, get_claims_by_band
from budget.statements import (
    extract_operations_summary,
    statement_to_sankey,
    statement_to_trees,
)

__all__ = [
    "BudgetDataError",
    "DataNotFound",
    "DataValidationError",
    "NotFound",
    "DataSource",
    "FileDataSource",
    "InMemoryDataSource",
    "get_default_source",
    "set_default_source",
    "list_municipalities_by_province",
    "list_provinces",
    "get_available_years",
    "get_available_years_for_jurisdiction",
    "get_latest_year_for_jurisdiction",
    "resolve_jurisdiction_path",
    "expand_departments",
    "parse_department_tree",
    "BucketingConfig",
    "build_sankey",
    "get_department_data",
    "get_expanded_departments",
    "get_file_last_modified",
    "get_jurisdiction_data",
    "list_departments",
    "Claim",
    "get_claims_by_band",
    "extract_operations_summary",
    "statement_to_sankey",
    "statement_to_trees",
]
