# tests/conftest.py
"""
Shared HL7 v2 fixtures.
"""

import pytest


# ADT^A04 as it typically arrives from hand-written fixtures: LF terminators
# with blank separator lines in between.
ADT_A04 = (
    "MSH|^~\\&|EPIC|EPICADT|SMS|SMSADT|199912271408|CHARRIS|ADT^A04|1817457|D|2.5|\n"
    "\n"
    "PID||0493575^^^2^ID 1|454721||DOE^JOHN^^^^|DOE^JOHN^^^^|19480203|M||B|"
    "254 MYSTREET AVE^^MYTOWN^OH^44123^USA||(216)123-4567|||M|NON|400003403~1129086|\n"
    "\n"
    "NK1||ROE^MARIE^^^^|SPO||(216)123-4567||EC|||||||||||||||||||||||||||\n"
    "\n"
    "PV1||O|168 ~219~C~PMA^^^^^^^^^||||277^ALLEN MYLASTNAME^BONNIE^^^^||||||||||"
    " ||2688684|||||||||||||||||||||||||199912271408||||||002376853\n"
)

# Minimal ADT^A01 with CR separators.
ADT_A01 = (
    "MSH|^~\\&|SEND|SENDER|RECV|RECEIVER|202001011200||ADT^A01|MSG00001|P|2.5\r"
    "PID|1||12345^^^HOSP^MR||Doe^John\r"
    "PV1|1|I"
)


@pytest.fixture
def adt_a04_text() -> str:
    return ADT_A04


@pytest.fixture
def adt_a01_text() -> str:
    return ADT_A01
