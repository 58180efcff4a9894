"""
Hypothesis strategies shared by the property and backend-equivalence tests.

Value pools are small on purpose so generated datasets contain sort-key ties,
repeated filter values, NULLs and LIKE metacharacters. Names include accented,
Greek, Turkish and German text whose case folding and collation differ from
ASCII rules.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from hypothesis import strategies as st

from transaction_query.domain.models import Transaction

NAMES = [
    None,
    "",
    "John Doe",
    "john doe",
    "Alice Johnson",
    "Bob Smith",
    "100% Pure",
    "under_score",
    "Émile Roux",
    "EMILE ROUX",
    "Zoe Park",
    "ΟΔΟΣ Παπαδόπουλος",
    "İpek Yılmaz",
    "Jürgen Straße",
]
PHONES = [None, "", "9876543210", "9123456780", "+1 (555) 010"]
REGIONS = [None, "North", "South", "East"]
GENDERS = [None, "Male", "Female"]
CATEGORIES = [None, "Electronics", "Beauty", "Clothing"]
TAGS = ["gift", "sale", "organic", "premium"]
PAYMENTS = [None, "Cash", "UPI", "Credit Card"]
AGES = [None, 18, 25, 40, 65]
DATES = [
    None,
    datetime(2023, 1, 20, 15, 45, tzinfo=UTC),
    datetime(2023, 3, 1, tzinfo=UTC),
    datetime(2023, 3, 15, 10, 0, tzinfo=UTC),
    datetime(2023, 7, 4, 12, 0, tzinfo=UTC),
]

SEARCH_TERMS = [
    "john",
    "BOB",
    "  smith ",
    "doe",
    "%",
    "_",
    "100%",
    "912",
    "(555)",
    "zz",
    "émile",
    "οδοσ",
    "ΟΔΟΣ",
    "i\u0307pek",
    "STRASSE",
]
DATE_BOUNDS = [
    "1970-01-01T00:00:00Z",
    "2023-03-01T00:00:00Z",
    "2023-03-15T10:00:00Z",
    "2023-12-31T23:59:59Z",
]


@st.composite
def _amounts(draw):
    total_cents = draw(st.one_of(st.none(), st.integers(min_value=0, max_value=50_000)))
    if total_cents is None:
        return None, draw(st.one_of(st.none(), st.just(Decimal("10.00"))))
    total = Decimal(total_cents).scaleb(-2)
    final = draw(
        st.one_of(
            st.none(),
            st.integers(min_value=0, max_value=total_cents).map(lambda c: Decimal(c).scaleb(-2)),
        )
    )
    return total, final


@st.composite
def transaction_fields(draw):
    total, final = draw(_amounts())
    return {
        "customer_id": draw(st.sampled_from([None, "C1", "C2", "C3"])),
        "customer_name": draw(st.sampled_from(NAMES)),
        "phone_number": draw(st.sampled_from(PHONES)),
        "gender": draw(st.sampled_from(GENDERS)),
        "age": draw(st.sampled_from(AGES)),
        "customer_region": draw(st.sampled_from(REGIONS)),
        "product_id": draw(st.sampled_from([None, "P1", "P2"])),
        "product_category": draw(st.sampled_from(CATEGORIES)),
        "tags": draw(st.lists(st.sampled_from(TAGS), max_size=3, unique=True)),
        "quantity": draw(st.integers(min_value=0, max_value=4)),
        "total_amount": total,
        "final_amount": final,
        "date": draw(st.sampled_from(DATES)),
        "payment_method": draw(st.sampled_from(PAYMENTS)),
    }


def transaction_lists(max_size: int = 25):
    """Lists of transactions with unique ids in load order."""
    return st.lists(transaction_fields(), max_size=max_size).map(
        lambda rows: [
            Transaction(transaction_id=f"TX{index:04d}", **row) for index, row in enumerate(rows)
        ]
    )


@st.composite
def _age_range(draw):
    low = draw(st.one_of(st.none(), st.sampled_from([0, 18, 25, 30, 65])))
    high = draw(st.one_of(st.none(), st.sampled_from([18, 25, 40, 64, 100])))
    if low is not None and high is not None and low > high:
        low, high = high, low
    bounds = {}
    if low is not None:
        bounds["min"] = low
    if high is not None:
        bounds["max"] = high
    return bounds


@st.composite
def _date_range(draw):
    start, end = sorted(draw(st.lists(st.sampled_from(DATE_BOUNDS), min_size=2, max_size=2)))
    bounds = {}
    if draw(st.booleans()):
        bounds["start"] = start
    if draw(st.booleans()):
        bounds["end"] = end
    return bounds


def _selection(values):
    return st.lists(st.sampled_from([v for v in values if v]), max_size=2, unique=True)


filter_params = st.fixed_dictionaries(
    {},
    optional={
        "customerRegion": _selection(REGIONS),
        "gender": _selection(GENDERS),
        "productCategory": _selection(CATEGORIES),
        "tags": _selection(TAGS),
        "paymentMethod": _selection(PAYMENTS),
        "ageRange": _age_range(),
        "dateRange": _date_range(),
    },
)

search_params = st.one_of(st.none(), st.sampled_from(SEARCH_TERMS))


@st.composite
def query_params(draw, max_page_size: int = 7):
    """Raw camelCase request mappings accepted by the engine."""
    params = {
        "search": draw(search_params),
        "filters": draw(filter_params),
        "sortBy": draw(st.sampled_from(["date", "quantity", "customerName"])),
        "sortOrder": draw(st.sampled_from([None, "asc", "desc"])),
        "page": draw(st.integers(min_value=1, max_value=4)),
        "pageSize": draw(st.integers(min_value=1, max_value=max_page_size)),
    }
    return {key: value for key, value in params.items() if value is not None}
