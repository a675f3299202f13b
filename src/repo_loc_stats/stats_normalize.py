from __future__ import annotations

from collections.abc import Mapping

from .models import Language, LanguageStat, LanguageStats

# Code written under contract that never lands in an owned repository.
# Added once to the global totals only; never to per-repo reports.
MANUAL_ADJUSTMENTS: dict[Language, int] = {
    Language.RUST: 15_673,
    Language.TYPESCRIPT: 4_333,
}

MARKUP_VARIANTS: dict[Language, Language] = {
    Language.TSX: Language.TYPESCRIPT,
}


def combine_markup_variant(stats: LanguageStats) -> None:
    """Fold typed-markup dialects (TSX) into their base language in place."""
    for variant, base in MARKUP_VARIANTS.items():
        st = stats.pop(variant, None)
        if st is None:
            continue
        cur = stats.get(base)
        if cur is None:
            stats[base] = LanguageStat(name=base, code=st.code, comments=st.comments, blanks=st.blanks)
        else:
            cur.code += st.code
            cur.comments += st.comments
            cur.blanks += st.blanks


def apply_manual_adjustments(stats: LanguageStats, adjustments: Mapping[Language, int]) -> None:
    for lang, code in adjustments.items():
        if code < 0:
            raise ValueError(f"manual adjustment for {lang.value} must not be negative: {code}")
        cur = stats.get(lang)
        if cur is None:
            stats[lang] = LanguageStat(name=lang, code=code)
        else:
            cur.code += code


def normalize_total(stats: LanguageStats, adjustments: Mapping[Language, int]) -> None:
    combine_markup_variant(stats)
    apply_manual_adjustments(stats, adjustments)


def normalize_repo(stats: LanguageStats) -> None:
    combine_markup_variant(stats)
