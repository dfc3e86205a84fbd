#!/usr/bin/env python3
"""
Generate a bulk set of HL7 v2 messages for testing/demo.

Every message is assembled through hl7_toolkit.Message (create_segment, set,
build), so the output doubles as a smoke test of the builder.

Features:
- ADT^A01, ADT^A04, ADT^A08 (MSH, EVN, PID, NK1, PV1) and ORU^R01
  (MSH, PID, OBR, OBX...)
- Rotates or fixes line endings: CR, LF, CRLF (HL7 expects CR)
- Deterministic output with --seed

Examples:
    python scripts/generate_hl7_bulk.py --count 200 --out tests/data/bulk
    python scripts/generate_hl7_bulk.py --count 50 --out out \
        --message-type mixed --line-endings mix --seed 22
"""

from __future__ import annotations

import argparse
import random
from datetime import datetime, timedelta
from pathlib import Path

from hl7_toolkit import Message, escape

SEED = 22

NAMES_GIVEN = ["John", "Jane", "Alex", "Sam", "Casey Joan", "Riley", "Quinn", "Kai"]
NAMES_FAMILY = ["Doe", "Smith", "Lee", "Miller-Thompson", "Garcia", "Tran", "O'Neil"]
STREETS = ["Main St", "Oak St", "Pine Ave", "Maple Rd", "White Feather Ct"]
CITIES = ["Cincinnati", "Boston", "Denver", "Austin", "Seattle"]
STATES = ["OH", "MA", "CO", "TX", "WA"]
SEX_CODES = ["M", "F", "O", "U"]

ADT_EVENTS = ("A01", "A04", "A08")
OBSERVATIONS = [
    ("2345-7", "Glucose", "mg/dL", 70, 140),
    ("2951-2", "Sodium", "mmol/L", 133, 147),
    ("2823-3", "Potassium", "mmol/L", 3.2, 5.3),
]

TERMINATORS = {"cr": "\r", "lf": "\n", "crlf": "\r\n"}


def _ts(dt: datetime) -> str:
    """
    HL7 TS format: YYYYMMDDHHMMSS.
    """
    return dt.strftime("%Y%m%d%H%M%S")


def _rand_dob(rng: random.Random) -> str:
    """
    Random date of birth (YYYYMMDD).
    """
    return f"{rng.randint(1930, 2020):04d}{rng.randint(1, 12):02d}{rng.randint(1, 28):02d}"


def _header(msg: Message, msg_type: str, event: str, ts: str, control_id: str) -> None:
    msg.create_segment("MSH")
    msg.set(
        "MSH",
        {
            "MSH.3": "HIS",
            "MSH.4": "RIH",
            "MSH.5": "EKG",
            "MSH.6": "EKG",
            "MSH.7": ts,
            "MSH.9": {"MSH.9.1": msg_type, "MSH.9.2": event},
            "MSH.10": control_id,
            "MSH.11": "P",
            "MSH.12": "2.5.1",
        },
    )


def _patient(msg: Message, rng: random.Random) -> None:
    msg.create_segment("PID")
    msg.set(
        "PID",
        {
            "PID.1": 1,
            "PID.3": {"PID.3.1": rng.randint(10_000, 999_999), "PID.3.4": "MRN"},
            "PID.5": {
                "PID.5.1": escape(rng.choice(NAMES_FAMILY)),
                "PID.5.2": rng.choice(NAMES_GIVEN),
                "PID.5.7": "L",
            },
            "PID.7": _rand_dob(rng),
            "PID.8": rng.choice(SEX_CODES),
            "PID.11": {
                "PID.11.1": f"{rng.randint(1, 9999)} {rng.choice(STREETS)}",
                "PID.11.3": rng.choice(CITIES),
                "PID.11.4": rng.choice(STATES),
                "PID.11.5": f"{rng.randint(10000, 99999)}",
            },
            "PID.13": [
                f"{rng.randint(200, 999)}{rng.randint(200, 999)}{rng.randint(0, 9999):04d}"
                for _ in range(rng.randint(1, 2))
            ],
        },
    )


def make_adt_message(rng: random.Random, idx: int, base_dt: datetime, event: str) -> Message:
    """
    Construct a synthetic ADT message for the given trigger event.
    """
    ts = _ts(base_dt + timedelta(minutes=idx))
    msg = Message()
    _header(msg, "ADT", event, ts, f"MSG{idx:06d}")
    msg.create_segment("EVN")
    msg.set("EVN", {"EVN.1": event, "EVN.2": ts})
    _patient(msg, rng)
    msg.create_segment("NK1")
    msg.set(
        "NK1",
        {
            "NK1.1": 1,
            "NK1.2": {"NK1.2.1": "ROE", "NK1.2.2": "MARIE"},
            "NK1.3": "SPO",
        },
    )
    msg.create_segment("PV1")
    msg.set(
        "PV1",
        {
            "PV1.1": 1,
            "PV1.2": "I" if event == "A01" else "O",
            "PV1.3": {"PV1.3.1": "2000", "PV1.3.2": "2012", "PV1.3.3": "01"},
            "PV1.7": {"PV1.7.1": "1234", "PV1.7.2": "Physician", "PV1.7.3": "Primary"},
        },
    )
    return msg


def make_oru_message(rng: random.Random, idx: int, base_dt: datetime) -> Message:
    """
    Construct a synthetic ORU^R01 result message with one OBR and 1-3 OBX.
    """
    ts = _ts(base_dt + timedelta(minutes=idx))
    msg = Message()
    _header(msg, "ORU", "R01", ts, f"MSG{idx:06d}")
    _patient(msg, rng)
    msg.create_segment("OBR")
    msg.set(
        "OBR",
        {
            "OBR.1": 1,
            "OBR.2": f"ORD{rng.randint(10000, 99999)}",
            "OBR.4": {"OBR.4.1": "24323-8", "OBR.4.2": "Metabolic panel", "OBR.4.3": "LN"},
            "OBR.7": ts,
        },
    )
    for n, (code, name, units, low, high) in enumerate(
        rng.sample(OBSERVATIONS, rng.randint(1, len(OBSERVATIONS))), start=1
    ):
        msg.create_segment("OBX")
        msg.set(
            f"OBX[{n}]",
            {
                "OBX.1": n,
                "OBX.2": "NM",
                "OBX.3": {"OBX.3.1": code, "OBX.3.2": name, "OBX.3.3": "LN"},
                "OBX.5": f"{rng.uniform(low, high):.2f}",
                "OBX.6": units,
                "OBX.11": "F",
            },
        )
    return msg


def _terminator(mode: str, idx: int) -> str:
    """
    HL7 expects \\r (CR); 'mix' cycles CR, LF, CRLF by index.
    """
    mode = mode.lower()
    if mode == "mix":
        mode = ["cr", "lf", "crlf"][idx % 3]
    if mode not in TERMINATORS:
        raise ValueError("line endings must be one of: cr|lf|crlf|mix")
    return TERMINATORS[mode]


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate bulk HL7 v2 messages.")
    ap.add_argument("--count", type=int, default=100, help="How many messages (default 100).")
    ap.add_argument("--out", type=Path, required=True, help="Destination directory.")
    ap.add_argument("--seed", type=int, default=SEED, help="Random seed (default 22).")
    ap.add_argument(
        "--line-endings",
        choices=["cr", "lf", "crlf", "mix"],
        default="cr",
        help="Segment terminators (default cr).",
    )
    ap.add_argument(
        "--message-type",
        choices=["adt_a01", "adt_a04", "adt_a08", "oru_r01", "mixed"],
        default="adt_a01",
        help="Type of messages to generate (default adt_a01).",
    )
    return ap.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)

    rng = random.Random(args.seed)
    outdir: Path = args.out
    outdir.mkdir(parents=True, exist_ok=True)
    base_dt = datetime(2025, 1, 1, 12, 0, 0)

    for i in range(1, args.count + 1):
        kind = args.message_type
        if kind == "mixed":
            kind = rng.choice(["adt_a01", "adt_a04", "adt_a08", "oru_r01"])
        if kind == "oru_r01":
            msg = make_oru_message(rng, i, base_dt)
        else:
            msg = make_adt_message(rng, i, base_dt, kind[-3:].upper())

        p = outdir / f"msg_{i:04d}.hl7"
        p.write_bytes(msg.build(_terminator(args.line_endings, i)).encode("utf-8"))

    print(f"Generated {args.count} messages in {outdir}")


if __name__ == "__main__":
    main()
