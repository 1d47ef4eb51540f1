"""Normalization of free-text classifier output.

Classifier replies are untrusted text. All matching policy for routing and
template selection lives here so nodes only see normalized values.
"""

from typing import Union

from contrakt.state import Operation

# Substring checks run in this order; the first hit wins.
INTENT_PRECEDENCE = (
    ("contribute", Operation.CONTRIBUTE),
    ("create", Operation.CREATE),
    ("info", Operation.INFO),
    ("unknown", Operation.UNKNOWN),
)


def normalize_intent(raw: object) -> Operation:
    """Map classifier output to an Operation.

    Matching is case-sensitive substring containment with first-match
    precedence contribute > create > info > unknown. Anything else, including
    empty or non-string output, maps to ``Operation.UNKNOWN``.
    """
    if not isinstance(raw, str):
        return Operation.UNKNOWN
    for token, operation in INTENT_PRECEDENCE:
        if token in raw:
            return operation
    return Operation.UNKNOWN


def parse_template_selection(raw: object) -> Union[int, str]:
    """Parse template-selector output into a position or a verbatim name.

    A trimmed value made of ASCII digits with an optional sign is a
    zero-based position (negative values included; bounds are checked by the
    index). Otherwise the trimmed text is returned as a template name.

    Raises:
        ValueError: if the output is empty or not text.
    """
    if not isinstance(raw, str):
        raise ValueError(f"Template selection must be text, got {type(raw).__name__}")
    value = raw.strip()
    if not value:
        raise ValueError("Template selection is empty")
    digits = value[1:] if value[0] in "+-" else value
    if digits.isascii() and digits.isdigit():
        return int(value)
    return value
