from typing import Dict, List

LAINNYA = "LAINNYA"

# Sector name -> station-office (STO) prefixes. Order matters: first match wins.
SEKTOR_MAP: Dict[str, List[str]] = {
    "SIGLI": ["SGI", "BNN", "MRU", "SLG"],
    "LAMTEMEN": ["LTM", "LOA"],
}


def _matches(workzone: str, sto_list: List[str]) -> bool:
    # contains() is looser than startswith(); existing rekap numbers rely on it
    return any(workzone.startswith(sto) or sto in workzone for sto in sto_list)


def classify(workzone: str, sektor_map: Dict[str, List[str]] = SEKTOR_MAP) -> str:
    wz = (workzone or "").upper().strip()
    for sektor, sto_list in sektor_map.items():
        if _matches(wz, sto_list):
            return sektor
    return LAINNYA


def matches_sektor(workzone: str, sektor: str, sektor_map: Dict[str, List[str]] = SEKTOR_MAP) -> bool:
    sto_list = sektor_map.get((sektor or "").upper())
    if not sto_list:
        return False
    return _matches((workzone or "").upper().strip(), sto_list)


def describe_sektors(sektor_map: Dict[str, List[str]] = SEKTOR_MAP) -> List[str]:
    return [f"{name}: {', '.join(stos)}" for name, stos in sektor_map.items()]
