"""Default heuristic tables for the personnel-card document family.

These are plain data; ``HeuristicConfig`` turns them into validated models.
"""

# Sub-header tokens that mark a row below the main header as a header row.
SUB_HEADER_PATTERNS = [
    r"^\d+회차?$",  # 1회, 2회차
    r"^\d{1,2}\s*\([A-Za-z]{2,3}\)$",  # 04 (Mo), 06 (Wed)
    r"^[A-Za-z]{3,}$",  # Mon, Tue, ...
]

# Fixed-identity fields: their synthesized name is the deepest header value only.
BASIC_COLUMN_PATTERNS = [
    r"^No\.?$",
    r"^번호$",
    r"^순번$",
    r"^이름$",
    r"^성명$",
    r"^한글이름$",
    r"^영문이름$",
    r"^이메일$",
    r"^연락처$",
    r"^전화번호$",
    r"^생년월일$",
    r"^성별$",
    r"^거주지$",
    r"^주소$",
    r"^Name$",
    r"^E-?mail$",
    r"^Phone$",
    r"^Address$",
    r"^Date of Birth$",
]

DOCUMENT_TITLES = ["개인이력카드"]

# Template texts that are field labels even without label styling.
KNOWN_LABELS = [
    "성명", "생년월일", "성별", "연락처", "이메일", "거주지",
    "참여분야", "수행기관", "사업명", "참여기간", "국가", "직무",
    "희망직종", "희망직무", "구분",
    "취업여부", "취업처", "담당직무",
    "핵심 세미나", "전문가 컨설팅", "실전 모의면접",
    "1회", "2회", "3회", "4회", "5회", "6회", "7회",
    "1분기", "2분기", "3분기", "4분기",
    "해외취업", "사전참여여부",
]


def _quarter_rules() -> list[dict]:
    rows = {"취업여부": 18, "취업처": 19, "담당직무": 20}
    cols = {"2분기": 2, "3분기": 6, "4분기": 11}
    rules = []
    for field, row in rows.items():
        for quarter, col in cols.items():
            rules.append(
                {
                    "pattern": rf"(?:취업현황[_\s]*)?{quarter}[_\s]*{field}",
                    "target_row": row,
                    "target_col": col,
                    "label": f"{quarter} {field}",
                }
            )
    return rules


def _session_rules() -> list[dict]:
    programs = [
        # (column pattern, template label, template row, column per session)
        (r"전문가\s?강연", "핵심 세미나", 13, [2, 3, 4, 5, 6, 7, 8]),
        (r"전문가\s?컨설팅", "전문가 컨설팅", 14, [2, 3, 5]),
        (r"실전\s?모의\s?면접", "실전모의면접", 15, [7, 8, 9, 10, 11, 13]),
    ]
    rules = []
    for pattern, label, row, cols in programs:
        for session, col in enumerate(cols, start=1):
            rules.append(
                {
                    "pattern": rf"(?:프로그램\s*참여현황[_\s]*)?{pattern}[_\s]*{session}회",
                    "target_row": row,
                    "target_col": col,
                    "label": f"{label} {session}회",
                }
            )
    return rules


OVERRIDE_RULES = _quarter_rules() + _session_rules()

REQUIRED_FIELDS = [
    {"name": "성명", "aliases": ["이름", "성 명", "name"]},
    {"name": "연락처", "aliases": ["전화번호", "핸드폰", "휴대폰", "휴대전화", "전화", "phone", "tel"]},
    {"name": "생년월일", "aliases": ["생일", "출생일", "birthday", "birth"]},
    {"name": "이메일", "aliases": ["email", "e-mail", "메일"]},
    {"name": "성별", "aliases": ["sex", "gender"]},
    {"name": "거주지", "aliases": ["주소", "거주주소", "현거주지", "address"]},
    {"name": "참여분야", "aliases": ["분야"]},
    {"name": "수행기관", "aliases": ["기관", "기관명"]},
    {"name": "사업명", "aliases": ["사업", "프로젝트"]},
    {"name": "참여기간", "aliases": ["기간"]},
    {"name": "국가", "aliases": ["나라", "country"]},
    {"name": "직무", "aliases": ["업무", "job", "position"]},
    {"name": "희망직종", "aliases": ["직종"]},
    {"name": "희망직무", "aliases": []},
    {"name": "1분기", "aliases": []},
    {"name": "2분기", "aliases": []},
    {"name": "3분기", "aliases": []},
    {"name": "4분기", "aliases": []},
]
