"""
Form 5500 Search Configuration

Defines the ColumnMapping dataclass, the static long-form/short-form column
mappings, Schedule C provider roles, and environment-driven settings.
"""

import os
import re
from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class ColumnMapping:
    """One column of the search table and its source in each filing form."""
    alias: str
    long_form: str
    short_form: str
    data_type: str

    @property
    def index_name(self) -> str:
        return f"{SEARCH_VIEW}_{self.alias}_idx"


# ============================================================================
# TABLE NAMES
# ============================================================================

SEARCH_TABLE = "form_5500_search"
SEARCH_VIEW = "form5500_search_view"
RK_MAPPING_TABLE = "sched_c_provider_to_fbi_rk_company_id_mappings"

SECTIONS = ("all", "latest")
YEAR_PATTERN = re.compile(r"^\d{4}$")


# ============================================================================
# COLUMN MAPPINGS (search alias <- long form / short form expression)
# ============================================================================

TABLE_MAPPINGS: List[ColumnMapping] = [
    ColumnMapping("ack_id", "ack_id", "ack_id", "text"),
    ColumnMapping("plan_year_begin", "form_plan_year_begin_date::date",
                  "sf_plan_year_begin_date::date", "date"),
    ColumnMapping("tax_period", "form_tax_prd::date", "sf_tax_prd::date", "date"),
    ColumnMapping("plan_name", "plan_name", "sf_plan_name", "text"),
    ColumnMapping("plan_number", "spons_dfe_pn::text", "sf_plan_num::text", "text"),
    ColumnMapping("sponsor_name", "sponsor_dfe_name", "sf_sponsor_name", "text"),
    ColumnMapping("sponsor_ein", "spons_dfe_ein::text", "sf_spons_ein::text", "text"),
    ColumnMapping("sponsor_city", "spons_dfe_mail_us_city", "sf_spons_us_city", "text"),
    ColumnMapping("sponsor_state", "spons_dfe_mail_us_state", "sf_spons_us_state", "text"),
    ColumnMapping("sponsor_zip", "spons_dfe_mail_us_zip::text", "sf_spons_us_zip::text", "text"),
    ColumnMapping("business_code", "business_code::text", "sf_business_code::text", "text"),
    ColumnMapping("participants_boy", "tot_partcp_boy_cnt::int",
                  "sf_tot_partcp_boy_cnt::int", "int"),
    ColumnMapping("active_participants", "tot_active_partcp_cnt::int",
                  "sf_tot_act_partcp_boy_cnt::int", "int"),
    ColumnMapping("pension_benefit_codes", "type_pension_bnft_code",
                  "sf_type_pension_bnft_code", "text"),
    ColumnMapping("welfare_benefit_codes", "type_welfare_bnft_code",
                  "sf_type_welfare_bnft_code", "text"),
    # Long form assets come from Schedule H / I after the insert
    ColumnMapping("total_assets", "NULL::numeric", "sf_tot_assets_eoy_amt::numeric", "numeric"),
    ColumnMapping("net_assets", "NULL::numeric", "sf_net_assets_eoy_amt::numeric", "numeric"),
]


# ============================================================================
# PROVIDER / INVESTMENT COLUMNS
# ============================================================================

RK_COMPANY_ID_COL = "rk_company_id"

# Schedule C part 1 item 2 service codes, per provider role
PROVIDER_SERVICE_CODES: Dict[str, Tuple[str, ...]] = {
    "rk": ("15", "64"),        # recordkeeping / recordkeeping fees
    "tpa": ("13", "14"),       # contract administrator / administration
    "advisor": ("26", "27"),   # investment advisory (participants / plan)
}

PROVIDER_COLUMNS: List[str] = [
    f"{role}_{suffix}" for role in PROVIDER_SERVICE_CODES for suffix in ("name", "ein")
]

# Search flag <- Schedule H end-of-year amount column
INVESTMENT_COLUMNS: Dict[str, str] = {
    "inv_collective_trusts": "int_common_tr_eoy_amt",
    "inv_separate_accounts": "int_pool_sep_acct_eoy_amt",
    "inv_mutual_funds": "int_reg_invst_co_eoy_amt",
    "inv_general_accounts": "ins_co_gen_acct_eoy_amt",
    "inv_company_stock": "emplr_sec_eoy_amt",
}

TABLE_ORIGIN_COL = "table_origin"


# ============================================================================
# UNMATCHED RK REPORT
# ============================================================================

CANDIDATE_PREFIX_LENGTH = 2
MAX_SUGGESTION_DISTANCE = 6
UNMATCHED_RKS_FILE = "unmatched_rks.csv"


# ============================================================================
# ENVIRONMENT SETTINGS
# ============================================================================

JIRA_URL = os.environ.get("JIRA_URL", "")
JIRA_PROJECT = os.environ.get("JIRA_PROJECT", "DATA")
JIRA_ISSUE_TYPE = os.environ.get("JIRA_ISSUE_TYPE", "Task")
JIRA_TIMEOUT = int(os.environ.get("JIRA_TIMEOUT", "30"))

ZIP_CODES_URL = os.environ.get(
    "ZIP_CODES_URL",
    "https://raw.githubusercontent.com/jdcalvin/form5500-data-sets-import/master/form5500/zipcode.csv",
)
DOWNLOAD_TIMEOUT = int(os.environ.get("DOWNLOAD_TIMEOUT", "120"))


def validate_section(section: str) -> str:
    """Return section if it names a published data set, else raise."""
    if section not in SECTIONS:
        raise ValueError(f"Unknown section: {section}. Available: {', '.join(SECTIONS)}")
    return section


def validate_years(years: List[str]) -> List[str]:
    """Years end up in table names, so only four-digit strings are accepted."""
    years = [str(y).strip() for y in years]
    if not years:
        raise ValueError("At least one year is required")
    bad = [y for y in years if not YEAR_PATTERN.match(y)]
    if bad:
        raise ValueError(f"Invalid year(s): {', '.join(bad)}")
    return years
