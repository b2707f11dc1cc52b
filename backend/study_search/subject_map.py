# subject_map.py
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


# Course code prefix -> department name (UC Berkeley catalog).
PREFIX_TO_DEPARTMENT: Mapping[str, str] = MappingProxyType({
    "Anthro": "Anthropology",
    "AAS": "Asian American Studies Program",
    "Astro": "Astronomy",
    "BioE": "Bioengineering",
    "Bio": "Biology",
    "Buddh": "Buddhist Studies",
    "ChemE": "Chemical Engineering",
    "Chem": "Chemistry",
    "Chinese": "Chinese",
    "City": "City and Regional Planning",
    "CEE": "Civil and Environmental Engineering",
    "CE": "Civil and Environmental Engineering",
    "Classics": "Classics",
    "CogSci": "Cognitive Science",
    "CWP": "College Writing Program",
    "CompLit": "Comparative Literature",
    "CS": "Computer Science",
    "DS": "Data Science",
    "Econ": "Economics",
    "Educ": "Education",
    "EE": "Electrical Engineering",
    "ERG": "Energy and Resources Group",
    "Eng": "Engineering",
    "English": "English",
    "EnvDes": "Environmental Design",
    "ESPM": "Environmental Science, Policy, and Management",
    "Ethnic": "Ethnic Studies",
    "French": "French",
    "Geog": "Geography",
    "German": "German",
    "Hist": "History",
    "HistArt": "History of Art",
    "IEOR": "Industrial Engineering and Operations Research",
    "Info": "Information",
    "IB": "Integrative Biology",
    "Italian": "Italian Studies",
    "Japn": "Japanese",
    "Korean": "Korean",
    "LA": "Landscape Architecture",
    "Ling": "Linguistics",
    "MSE": "Materials Science and Engineering",
    "Math": "Mathematics",
    "ME": "Mechanical Engineering",
    "MCB": "Molecular and Cell Biology",
    "Music": "Music",
    "NES": "Near Eastern Studies",
    "NE": "Nuclear Engineering",
    "NST": "Nutritional Sciences and Toxicology",
    "Phys": "Physics",
    "PolSci": "Political Science",
    "Psych": "Psychology",
    "PH": "Public Health",
    "PubPol": "Public Policy",
    "Rhet": "Rhetoric",
    "Scand": "Scandinavian",
    "Soc": "Sociology",
    "SAsian": "South Asian",
    "Span": "Spanish",
    "Stat": "Statistics",
    "TDPS": "Theater, Dance, and Performance Studies",
    "UGBA": "Undergraduate Business Administration",
})


def _build_reverse(prefix_map: Mapping[str, str]) -> Mapping[str, Tuple[str, ...]]:
    grouped: Dict[str, List[str]] = {}
    for prefix, department in prefix_map.items():
        grouped.setdefault(department, []).append(prefix)
    return MappingProxyType({dept: tuple(prefixes) for dept, prefixes in grouped.items()})


# Department name -> every prefix that maps to it (e.g. CEE and CE).
DEPARTMENT_TO_PREFIXES: Mapping[str, Tuple[str, ...]] = _build_reverse(PREFIX_TO_DEPARTMENT)

# Lowercased prefix -> prefix as written in the table.
_PREFIX_INDEX: Mapping[str, str] = MappingProxyType(
    {prefix.lower(): prefix for prefix in PREFIX_TO_DEPARTMENT}
)

# Natural-language subject names -> canonical prefix.
SUBJECT_SYNONYMS: Mapping[str, str] = MappingProxyType({
    "physics": "Phys",
    "math": "Math",
    "mathematics": "Math",
    "computer science": "CS",
    "programming": "CS",
    "chemistry": "Chem",
    "biology": "Bio",
    "economics": "Econ",
    "statistics": "Stat",
    "psychology": "Psych",
    "history": "Hist",
    "english": "English",
})

RESOURCE_TYPE_TERMS: Tuple[str, ...] = (
    "midterm",
    "final",
    "exam",
    "homework",
    "hw",
    "quiz",
    "lecture",
    "notes",
    "lab",
    "discussion",
    "project",
)


def canonical_prefix(prefix: str) -> Optional[str]:
    """Return the directory spelling of a prefix, matched case-insensitively."""
    if not prefix:
        return None
    return _PREFIX_INDEX.get(prefix.lower())


def lookup_department(prefix: str) -> Optional[str]:
    canonical = canonical_prefix(prefix)
    if canonical is None:
        return None
    return PREFIX_TO_DEPARTMENT[canonical]
