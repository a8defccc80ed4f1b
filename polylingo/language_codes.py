"""
Language code mappings and utilities.

Standards:
- ISO 639-1: 2-letter language codes (en, ru, cs)
- BCP 47: Language + Region codes (en-US, pt-BR)

Polylang uses plain ISO 639-1 slugs for most sites. Each translation provider
expects its own variant of the code, see to_deepl_code() and to_mymemory_code().
"""

from typing import Optional, Dict

ISO_639_1 = {
    'ar': 'Arabic',
    'bg': 'Bulgarian',
    'cs': 'Czech',
    'da': 'Danish',
    'de': 'German',
    'el': 'Greek',
    'en': 'English',
    'es': 'Spanish',
    'et': 'Estonian',
    'fi': 'Finnish',
    'fr': 'French',
    'he': 'Hebrew',
    'hr': 'Croatian',
    'hu': 'Hungarian',
    'id': 'Indonesian',
    'it': 'Italian',
    'ja': 'Japanese',
    'kk': 'Kazakh',
    'ko': 'Korean',
    'lt': 'Lithuanian',
    'lv': 'Latvian',
    'nb': 'Norwegian Bokmål',
    'nl': 'Dutch',
    'pl': 'Polish',
    'pt': 'Portuguese',
    'ro': 'Romanian',
    'ru': 'Russian',
    'sk': 'Slovak',
    'sl': 'Slovenian',
    'sr': 'Serbian',
    'sv': 'Swedish',
    'tr': 'Turkish',
    'uk': 'Ukrainian',
    'vi': 'Vietnamese',
    'zh': 'Chinese',
}

BCP_47_VARIANTS = {
    'en-US': 'English (United States)',
    'en-GB': 'English (United Kingdom)',
    'pt-BR': 'Portuguese (Brazil)',
    'pt-PT': 'Portuguese (Portugal)',
    'zh-CN': 'Chinese (Simplified, China)',
    'zh-TW': 'Chinese (Traditional, Taiwan)',
}

ALL_LANGUAGE_CODES = {**ISO_639_1, **BCP_47_VARIANTS}

# Legacy or site-specific slugs and the ISO code providers understand
LEGACY_ALIASES = {
    'mo': 'ro',  # Moldovan
}

# DeepL rejects bare EN/PT as a target language
DEEPL_TARGET_DEFAULTS = {
    'en': 'EN-GB',
    'pt': 'PT-PT',
}


def normalize_language_code(code: str) -> str:
    """
    Normalize case and separators: 'pt_br' -> 'pt-BR', 'EN' -> 'en'.

    Examples:
        >>> normalize_language_code('pt_br')
        'pt-BR'
        >>> normalize_language_code('mo')
        'ro'
    """
    code = (code or '').strip().replace('_', '-')
    if not code:
        return code
    parts = code.split('-')
    base = parts[0].lower()
    base = LEGACY_ALIASES.get(base, base)
    if len(parts) > 1 and parts[1]:
        return f"{base}-{parts[1].upper()}"
    return base


def get_language_name(code: str) -> Optional[str]:
    """
    Get the full language name from code.

    Examples:
        >>> get_language_name('cs')
        'Czech'
        >>> get_language_name('xx')
    """
    return ALL_LANGUAGE_CODES.get(code) or ALL_LANGUAGE_CODES.get(normalize_language_code(code))


def extract_base_language(code: str) -> str:
    """
    Extract base language from code (remove region).

    Examples:
        >>> extract_base_language('en-US')
        'en'
    """
    return code.split('-')[0]


def languages_match(code1: str, code2: str, strict: bool = False) -> bool:
    """
    Check if two language codes match.

    Examples:
        >>> languages_match('en', 'en-US')
        True
        >>> languages_match('en', 'en-US', strict=True)
        False
    """
    code1 = normalize_language_code(code1)
    code2 = normalize_language_code(code2)
    if strict:
        return code1 == code2

    return extract_base_language(code1) == extract_base_language(code2)


def to_mymemory_code(code: str) -> str:
    """MyMemory takes ISO 639-1 codes (regions allowed)."""
    return normalize_language_code(code)


def to_deepl_code(code: str, target: bool = False) -> str:
    """
    DeepL takes upper-case codes; source languages carry no region.

    Examples:
        >>> to_deepl_code('en-US')
        'EN'
        >>> to_deepl_code('en', target=True)
        'EN-GB'
        >>> to_deepl_code('pt-BR', target=True)
        'PT-BR'
    """
    code = normalize_language_code(code)
    if not target:
        return extract_base_language(code).upper()
    if '-' in code:
        return code.upper()
    return DEEPL_TARGET_DEFAULTS.get(code, code.upper())


def get_all_language_codes() -> Dict[str, str]:
    """
    Get all known language codes.

    Returns:
        Dict mapping code to language name
    """
    return ALL_LANGUAGE_CODES.copy()
