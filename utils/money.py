"""Money helpers. Amounts are integer paise everywhere except at the edges."""


def rupees_to_paise(rupees) -> int:
    return int(round(float(rupees) * 100))

def paise_to_rupees(paise) -> str:
    return f"{paise / 100:.2f}"

def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])

def format_inr(paise) -> str:
    """Display string for a paise amount, e.g. 12345600 -> '₹1,23,456.00'."""
    sign = "-" if paise < 0 else ""
    whole, frac = paise_to_rupees(abs(paise)).split(".")
    return f"{sign}₹{_group_indian(whole)}.{frac}"

def format_percent(value: float, places: int = 2) -> str:
    return f"{value:.{places}f}%"
