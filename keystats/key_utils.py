#!/usr/bin/env python3
"""
Key utilities for keystroke statistics.

Functions for normalizing raw key events into canonical key names,
assigning keys to hands, and building or splitting key-pair identifiers.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

SPACE = 'Space'
PAIR_SEPARATOR = '-'

LEFT = 'left'
RIGHT = 'right'
NEUTRAL = 'neutral'

# Named keys with a fixed canonical name
NAMED_KEYS = {
    ' ': SPACE,
    'Spacebar': SPACE,
    'Enter': 'Enter',
    'Backspace': 'Backspace',
    'Tab': 'Tab',
    'CapsLock': 'Caps',
    'Escape': 'Esc',
}

# Modifiers are split by location: 1 is the left key, anything else the right
MODIFIER_KEYS = {
    'Shift': ('LShift', 'RShift'),
    'Control': ('LCtrl', 'RCtrl'),
    'Alt': ('LAlt', 'RAlt'),
    'Meta': ('LCmd', 'RCmd'),
}

LEFT_LOCATION = 1

LEFT_HAND_KEYS = frozenset([
    # Letters
    'Q', 'W', 'E', 'R', 'T',
    'A', 'S', 'D', 'F', 'G',
    'Z', 'X', 'C', 'V', 'B',
    # Digits
    '1', '2', '3', '4', '5',
    # Symbols and modifiers
    '`', 'Tab', 'Caps', 'LShift', 'LCtrl', 'LAlt', 'LCmd',
    # Shifted symbols
    '!', '@', '#', '$', '%', '~',
])

RIGHT_HAND_KEYS = frozenset([
    # Letters
    'Y', 'U', 'I', 'O', 'P',
    'H', 'J', 'K', 'L',
    'N', 'M',
    # Digits
    '6', '7', '8', '9', '0',
    # Symbols and modifiers
    '-', '=', '[', ']', '\\', ';', "'", ',', '.', '/',
    'Backspace', 'Enter', 'RShift', 'RCtrl', 'RAlt', 'RCmd',
    # Shifted symbols
    '^', '&', '*', '(', ')', '_', '+', '{', '}', '|', ':', '"', '<', '>', '?',
])

# Characters an equivalence code may contain besides letters
EQUIVALENCE_SYMBOLS = frozenset(';')
EQUIVALENCE_SPACE = '_'


def normalize_key(key: Any, location: Any = None) -> Optional[str]:
    """
    Map a raw key identifier to its canonical key name.
    
    Args:
        key: Raw key value from a key-down event (e.g., 'a', 'Shift', ' ')
        location: Key location; only consulted for modifiers
        
    Returns:
        Canonical key name, or None when the key has no mapping
    """
    if not isinstance(key, str) or not key:
        return None
    
    if key in MODIFIER_KEYS:
        left_name, right_name = MODIFIER_KEYS[key]
        return left_name if location == LEFT_LOCATION else right_name
    
    if key in NAMED_KEYS:
        return NAMED_KEYS[key]
    
    # Letters, digits and symbols use their uppercase form
    if len(key) == 1 and key.isprintable():
        return key.upper()
    
    return None


def get_hand_mapping() -> Dict[str, str]:
    """
    Get the static hand assignment for canonical keys.
    
    Returns:
        Dict mapping canonical key names to 'left' or 'right'
    """
    mapping = {key: LEFT for key in LEFT_HAND_KEYS}
    mapping.update({key: RIGHT for key in RIGHT_HAND_KEYS})
    return mapping


def make_pair_key(key1: str, key2: str) -> str:
    """Build the 'K1-K2' identifier for an ordered key pair."""
    return f"{key1}{PAIR_SEPARATOR}{key2}"


def split_pair_key(pair_key: str) -> Optional[Tuple[str, str]]:
    """
    Split a 'K1-K2' identifier into its two canonical keys.
    
    The '-' key is itself a canonical key, so '--A', 'A--' and '---'
    are accepted and split on the separator that leaves both sides
    non-empty.
    
    Args:
        pair_key: Key pair identifier
        
    Returns:
        Tuple of (key1, key2), or None if the identifier cannot be split
    """
    if not isinstance(pair_key, str):
        return None
    
    if pair_key.startswith(PAIR_SEPARATOR * 2):
        key1, key2 = PAIR_SEPARATOR, pair_key[2:]
    else:
        parts = pair_key.split(PAIR_SEPARATOR, 1)
        if len(parts) != 2:
            return None
        key1, key2 = parts
    
    if not key1 or not key2:
        return None
    
    return key1, key2


def to_equivalence_code(key: str) -> Optional[str]:
    """
    Convert a canonical key to its single-character equivalence code.
    
    Space becomes '_', letters and ';' become lowercase; any other key
    has no code.
    """
    if key == SPACE:
        return EQUIVALENCE_SPACE
    if len(key) == 1 and ((key.isascii() and key.isalpha()) or key in EQUIVALENCE_SYMBOLS):
        return key.lower()
    return None


def pair_to_equivalence_code(pair_key: str) -> Optional[str]:
    """
    Convert a 'K1-K2' identifier to a two-character equivalence code.
    
    Examples: 'A-Space' -> 'a_', 'Space-B' -> '_b', 'A-Enter' -> None.
    """
    keys = split_pair_key(pair_key)
    if keys is None:
        return None
    
    code1 = to_equivalence_code(keys[0])
    code2 = to_equivalence_code(keys[1])
    if code1 is None or code2 is None:
        return None
    
    return code1 + code2


class KeyNormalizer:
    """Normalizes raw key-down events into canonical keys."""
    
    def normalize(self, event: Any) -> Optional[str]:
        """
        Normalize a raw event of the form {key, location?}.
        
        Args:
            event: Mapping with 'key' and optional 'location', or an object
                with matching attributes
            
        Returns:
            Canonical key name, or None when the event must be dropped
        """
        if isinstance(event, Mapping):
            key = event.get('key')
            location = event.get('location')
        else:
            key = getattr(event, 'key', None)
            location = getattr(event, 'location', None)
        
        return normalize_key(key, location)


class HandClassifier:
    """Static QWERTY touch-typing hand assignment."""
    
    def __init__(self):
        self._hand_mapping = get_hand_mapping()
    
    def classify(self, key: str) -> str:
        return self._hand_mapping.get(key, NEUTRAL)
    
    def is_neutral(self, key: str) -> bool:
        return self.classify(key) == NEUTRAL
