"""
Italian legal citation formatter.

Styles:
    full:     "Art. 1, comma 1, Decreto legislativo n. 196/2003"
    short:    "Art. 1, comma 1, D.Lgs. 196/2003"
    pinpoint: "Art. 1, comma 1"
"""

from normattiva.models import ParsedCitation

TYPE_FULL_NAME = {
    "dlgs": "Decreto legislativo",
    "dl": "Decreto-legge",
    "legge": "Legge",
    "dpr": "Decreto del Presidente della Repubblica",
    "rd": "Regio decreto",
    "codice": "",
}

TYPE_SHORT_NAME = {
    "dlgs": "D.Lgs.",
    "dl": "D.L.",
    "legge": "L.",
    "dpr": "D.P.R.",
    "rd": "R.D.",
    "codice": "",
}


def format_citation(parsed: ParsedCitation, style: str = "full") -> str:
    """Render a parsed citation; invalid or article-less citations render as ""."""
    if parsed is None or not parsed.valid or not parsed.article:
        return ""

    pinpoint = f"Art. {parsed.article_ref}"
    if parsed.comma:
        pinpoint += f", comma {parsed.comma}"

    if style not in ("full", "short"):
        return pinpoint

    if parsed.type == "codice" and parsed.title:
        return f"{pinpoint}, {parsed.title}"

    if not (parsed.number and parsed.year):
        return pinpoint

    if style == "short":
        abbreviation = TYPE_SHORT_NAME.get(parsed.type, parsed.type)
        return f"{pinpoint}, {abbreviation} {parsed.number}/{parsed.year}"

    name = TYPE_FULL_NAME.get(parsed.type, parsed.type)
    return f"{pinpoint}, {name} n. {parsed.number}/{parsed.year}"
