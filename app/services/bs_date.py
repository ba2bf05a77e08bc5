"""Bikram Sambat (BS) display dates derived from Gregorian transaction dates.

The conversion is an approximate fixed-offset mapping: months are shifted by eight
(January falls in Poush, May in Baishakh) and the year offset is 56 or 57 depending
on which side of the BS new year the month falls. It is a pure function of the
Gregorian date, so the stored bs_date is recomputed on every write instead of
trusted from clients.
"""

from datetime import date
from typing import NamedTuple

NEPALI_MONTHS = (
    "बैशाख",
    "जेठ",
    "असार",
    "साउन",
    "भदौ",
    "असोज",
    "कार्तिक",
    "मंसिर",
    "पौष",
    "माघ",
    "फाल्गुन",
    "चैत",
)

NEPALI_DIGITS = "०१२३४५६७८९"

_DIGIT_TABLE = str.maketrans("0123456789", NEPALI_DIGITS)


class BSDate(NamedTuple):
    year: int
    month: int  # 1-12
    day: int


def ad_to_bs(ad_date: date) -> BSDate:
    """Map a Gregorian date to its approximate BS (year, month, day)."""
    bs_month = (ad_date.month - 1 + 8) % 12 + 1
    # BS new year falls mid-April; January to April belong to the previous BS year
    bs_year = ad_date.year + (57 if bs_month <= 8 else 56)
    return BSDate(year=bs_year, month=bs_month, day=ad_date.day)


def to_nepali_digits(value: str) -> str:
    """Replace ASCII digits with Devanagari digits; other characters pass through."""
    return value.translate(_DIGIT_TABLE)


def format_bs_date(bs_date: BSDate) -> str:
    """Render e.g. BSDate(2083, 3, 17) as '२०८३ साल असार १७ गते'."""
    year = to_nepali_digits(str(bs_date.year))
    day = to_nepali_digits(str(bs_date.day))
    month_name = NEPALI_MONTHS[bs_date.month - 1]
    return f"{year} साल {month_name} {day} गते"


def to_bs_date_string(ad_date: date) -> str:
    return format_bs_date(ad_to_bs(ad_date))
