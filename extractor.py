"""
Turns raw OCR text from a lab report into a list of health parameters.

Two layers run on every line: a small table of manual keyword rules for
common hematology parameters, then a cascade of generic regex patterns for
other report layouts. Results from both layers are concatenated as-is.
"""
import math
import re
from dataclasses import dataclass
from typing import Optional


# ================== MODEL ==================
STATUSES = ("normal", "high", "low")


@dataclass(frozen=True)
class HealthParameter:
    name: str
    value: str
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    status: Optional[str] = None

    def to_dict(self):
        """Serialize with camelCase keys, leaving out absent fields"""
        data = {"name": self.name, "value": self.value}
        if self.unit:
            data["unit"] = self.unit
        if self.normal_range:
            data["normalRange"] = self.normal_range
        if self.status:
            data["status"] = self.status
        return data

    @classmethod
    def from_dict(cls, data):
        """Build a parameter from a dict as produced by to_dict()"""
        if not isinstance(data, dict):
            raise ValueError("Health parameter must be an object")

        name = data.get("name")
        value = data.get("value")
        name = "" if name is None else str(name).strip()
        value = "" if value is None else str(value).strip()
        if not name or not value:
            raise ValueError("Health parameter requires a name and a value")

        status = data.get("status") or None
        if status is not None and status not in STATUSES:
            raise ValueError(f"Invalid status '{status}' for {name}")

        return cls(
            name=name,
            value=value,
            unit=data.get("unit") or None,
            normal_range=data.get("normalRange") or None,
            status=status,
        )


# ================== STATUS ==================
NUMBER = r"\d*\.?\d+"
MIN_MAX_RE = re.compile(rf"({NUMBER})\s*-\s*({NUMBER})")
LESS_THAN_RE = re.compile(rf"<\s*({NUMBER})")
GREATER_THAN_RE = re.compile(rf">\s*({NUMBER})")


def parse_number(text):
    """Return text as a finite float, or None"""
    if text is None:
        return None
    try:
        number = float(str(text).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def determine_status(value, normal_range=None):
    """Classify value against a 'min-max', '<x' or '>x' range.

    Returns 'normal', 'high', 'low' or None when the range is missing or
    cannot be read. Bounds of a min-max range count as normal.
    """
    if not normal_range or value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None

    match = MIN_MAX_RE.search(normal_range)
    if match:
        low, high = parse_number(match.group(1)), parse_number(match.group(2))
        if low is None or high is None:
            return None
        if value < low:
            return "low"
        if value > high:
            return "high"
        return "normal"

    match = LESS_THAN_RE.search(normal_range)
    if match:
        threshold = parse_number(match.group(1))
        if threshold is None:
            return None
        return "normal" if value < threshold else "high"

    match = GREATER_THAN_RE.search(normal_range)
    if match:
        threshold = parse_number(match.group(1))
        if threshold is None:
            return None
        return "normal" if value > threshold else "low"

    return None


def status_for(value_text, normal_range):
    return determine_status(parse_number(value_text), normal_range)


# ================== RELEVANCE ==================
HEALTH_KEYWORDS = (
    'haemoglobin', 'hemoglobin', 'hb', 'count', 'platelet', 'wbc', 'rbc',
    'hematocrit', 'pcv', 'mcv', 'mch', 'mchc', 'neutrophil', 'lymphocyte',
    'monocyte', 'eosinophil', 'basophil', 'glucose', 'cholesterol', 'hdl',
    'ldl', 'triglycerides', 'creatinine', 'urea', 'bun', 'sodium', 'potassium',
    'chloride', 'tsh', 'vitamin', 'iron', 'calcium', 'blood', 'sugar',
    'pressure', 'level', 'serum', 'plasma', 'volume',
)


def is_health_parameter(name):
    """Loose check that a captured name looks like a lab parameter"""
    lowered = name.strip().lower()
    return any(k in lowered for k in HEALTH_KEYWORDS) or len(lowered) > 2


def title_case(name):
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), name.lower())


# ================== LINES ==================
def split_lines(text):
    """Non-blank lines of text, in order and untrimmed"""
    if not text:
        return []
    return [line for line in text.split("\n") if line.strip()]


# ================== MANUAL RULES ==================
VALUE_RE = re.compile(rf"({NUMBER})")
RANGE_RE = re.compile(rf"({NUMBER}\s*-\s*{NUMBER})")


@dataclass(frozen=True)
class ManualRule:
    name: str
    unit: str
    default_range: str
    # Any one group matching fires the rule; a group matches when all of its
    # substrings are in the line.
    triggers: tuple
    fixed_range: bool = False

    def matches(self, line):
        return any(all(t in line for t in group) for group in self.triggers)

    def apply(self, line):
        """Return a HealthParameter for line, or None if the rule doesn't fire"""
        if not self.matches(line):
            return None
        value_match = VALUE_RE.search(line)
        if not value_match:
            return None

        value = value_match.group(1)
        normal_range = self.default_range
        if not self.fixed_range:
            range_match = RANGE_RE.search(line)
            if range_match:
                normal_range = range_match.group(1)

        return HealthParameter(
            name=self.name,
            value=value,
            unit=self.unit,
            normal_range=normal_range,
            status=status_for(value, normal_range),
        )


MANUAL_RULES = (
    ManualRule('Haemoglobin', 'g/dL', '12.0-15.0',
               triggers=(('HAEMOGLOBIN',),)),
    ManualRule('Red Blood Cell Count', 'million/cumm', '3.8-4.8',
               triggers=(('RED BLOOD', 'COUNT'),)),
    ManualRule('PCV (Hematocrit)', '%', '36.0-46.0',
               triggers=(('PCV',), ('HEMATOCRIT',))),
    ManualRule('MCV (Mean Corpuscular Volume)', 'fL', '80-100',
               triggers=(('MCV',),), fixed_range=True),
    ManualRule('Platelet Count', 'thousand/cumm', '150-450',
               triggers=(('PLATELET', 'COUNT'),)),
    ManualRule('Total Count (WBC)', 'thousand/cumm', '4.0-10.0',
               triggers=(('TOTAL COUNT',),)),
)


def apply_manual_rules(line, trace=None):
    found = []
    for rule in MANUAL_RULES:
        parameter = rule.apply(line)
        if parameter is not None:
            found.append(parameter)
            _trace(trace, f"✅ Added {rule.name} manually")
    return found


# ================== GENERIC PATTERNS ==================
class GenericPattern:
    """One regex layout. Groups are name, value, unit, then one or two range groups."""

    def __init__(self, label, pattern, range_groups=(4,)):
        self.label = label
        self.regex = re.compile(pattern, re.IGNORECASE)
        self.range_groups = range_groups

    def find(self, line):
        """Yield (name, value, unit, range) tuples for every match in line"""
        for match in self.regex.finditer(line):
            normal_range = None
            for index in self.range_groups:
                if match.group(index) and match.group(index).strip():
                    normal_range = match.group(index).strip()
                    break
            yield (
                (match.group(1) or "").strip(),
                (match.group(2) or "").strip(),
                (match.group(3) or "").strip() or None,
                normal_range,
            )


GENERIC_PATTERNS = (
    # "PARAMETER NAME value unit (range)" or "PARAMETER NAME value unit range"
    GenericPattern(
        "name value unit range",
        r"([A-Za-z\s()]+(?:COUNT|VOLUME|CONCENTRATION|HAEMOGLOBIN|HEMATOCRIT|MCV|MCH|MCHC|PLATELET))"
        r"\s*([0-9.]+)\s*([a-zA-Z/%]+)?\s*(?:\(([^)]+)\)|([0-9.-]+\s*-\s*[0-9.]+))",
        range_groups=(4, 5),
    ),
    # "TEST NAME ... Result Reference"
    GenericPattern(
        "name result reference",
        r"([A-Za-z\s()]+(?:HAEMOGLOBIN|COUNT|VOLUME|HEMATOCRIT|MCV|MCH|MCHC|PLATELET))"
        r"[^0-9]*([0-9.]+)\s*([a-zA-Z/%]*)\s*([0-9.-]+\s*-\s*[0-9.]+|\([^)]+\))",
    ),
    # "Parameter: value unit"
    GenericPattern(
        "key value",
        r"([A-Za-z\s]{4,}):\s*([0-9.]+)\s*([A-Za-z/%]+)?",
        range_groups=(),
    ),
    # Table columns separated by whitespace
    GenericPattern(
        "table",
        r"([A-Za-z\s()]{4,}(?:HAEMOGLOBIN|COUNT|VOLUME|HEMATOCRIT|MCV|MCH|MCHC|PLATELET))"
        r"\s+([0-9.]+)\s+([a-zA-Z/%]*)\s+([0-9.-]+\s*-\s*[0-9.]+)",
    ),
    # Hematology keyword at the start of the match
    GenericPattern(
        "hematology keyword",
        r"(HAEMOGLOBIN|RED BLOOD.*COUNT|PCV|HEMATOCRIT|MCV|MCH|MCHC|PLATELET.*COUNT|TOTAL COUNT)"
        r"\s*(?:\([^)]*\))?\s*([0-9.]+)\s*([a-zA-Z/%]*)\s*([0-9.-]+\s*-\s*[0-9.]+|\([^)]+\))",
    ),
)


# Generic patterns backtrack heavily on long digit-free lines; report rows are
# far shorter than this.
MAX_LINE_LENGTH = 200


def apply_generic_patterns(line, trace=None):
    found = []
    if len(line) > MAX_LINE_LENGTH:
        _trace(trace, f"✂️ Scanning first {MAX_LINE_LENGTH} of {len(line)} characters")
        line = line[:MAX_LINE_LENGTH]
    for pattern in GENERIC_PATTERNS:
        for name, value, unit, normal_range in pattern.find(line):
            _trace(trace, f"🎯 {pattern.label}: name={name!r} value={value!r} "
                          f"unit={unit!r} range={normal_range!r}")
            if not name or not value or not is_health_parameter(name):
                _trace(trace, f"⏭️ Rejected {name!r}")
                continue
            parameter = HealthParameter(
                name=title_case(name),
                value=value,
                unit=unit,
                normal_range=normal_range,
                status=status_for(value, normal_range),
            )
            found.append(parameter)
            _trace(trace, f"✅ Added {parameter.name} via regex")
    return found


# ================== ENTRY POINT ==================
def _trace(trace, message):
    if trace is not None:
        trace(message)


def extract_health_parameters(text, trace=None):
    """Extract every health parameter found in OCR text.

    trace, when given, is called with a diagnostic message for each line
    processed and each match considered. Duplicates produced by the manual
    rules and the generic patterns are kept.
    """
    parameters = []
    lines = split_lines(text)
    _trace(trace, f"🔍 Parsing {len(lines)} lines")

    for index, line in enumerate(lines):
        _trace(trace, f"📝 Line {index}: {line!r}")
        parameters.extend(apply_manual_rules(line, trace))
        parameters.extend(apply_generic_patterns(line, trace))

    _trace(trace, f"🎉 Parsed {len(parameters)} parameters")
    return parameters
