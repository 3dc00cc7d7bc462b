#!/usr/bin/env python3
"""
Text utilities for keystroke statistics.

Functions for turning practice text or recorded key-event logs into the
key-down events the engine consumes, and for replaying them passage by
passage.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

# Characters typed with a named key rather than their own value
CHAR_TO_KEY = {
    '\n': 'Enter',
    '\t': 'Tab',
    '\b': 'Backspace',
}

BOUNDARY_MARKER = 'boundary'


def char_to_key_event(char: str) -> Optional[Dict[str, Any]]:
    """
    Convert one typed character to a key-down event.

    Args:
        char: Single character

    Returns:
        Event dictionary {'key': ...}, or None for characters with no key
    """
    if char in CHAR_TO_KEY:
        return {'key': CHAR_TO_KEY[char]}
    if len(char) == 1 and char.isprintable():
        return {'key': char}
    return None


def text_to_key_events(text: str) -> List[Dict[str, Any]]:
    """Convert text to a list of key-down events, skipping characters with no key."""
    events = []
    for char in text:
        event = char_to_key_event(char)
        if event is not None:
            events.append(event)
    return events


def split_passages(text: str) -> List[str]:
    """
    Split practice text into passages separated by blank lines.

    Runs of whitespace inside a passage are collapsed to single spaces.
    """
    if not text:
        return []

    passages = []
    for block in re.split(r'\n\s*\n', text):
        passage = re.sub(r'\s+', ' ', block).strip()
        if passage:
            passages.append(passage)
    return passages


def is_boundary_event(event: Any) -> bool:
    """True for a log entry marking the start of a new passage."""
    return isinstance(event, dict) and bool(event.get(BOUNDARY_MARKER))


def load_key_events(filepath: str) -> List[Any]:
    """
    Load recorded key events from a JSON array or a JSON-lines file.

    Entries are returned as stored; entries the engine cannot normalize are
    dropped at replay. An entry {"boundary": true} marks a passage boundary.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not valid JSON or JSON lines
    """
    file_path = Path(filepath)

    if not file_path.exists():
        raise FileNotFoundError(f"Key event file not found: {filepath}")

    content = file_path.read_text(encoding='utf-8')
    stripped = content.strip()
    if not stripped:
        return []

    if stripped.startswith('['):
        try:
            events = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing key events in {filepath}: {e}")
        if not isinstance(events, list):
            raise ValueError(f"Expected a list of key events in {filepath}")
        return events

    events = []
    for line_number, line in enumerate(content.splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing key event on line {line_number} of {filepath}: {e}")
    return events


def replay_events(engine, events: Iterable[Any]) -> Dict[str, int]:
    """
    Feed key events to a StatisticsEngine in order.

    Args:
        engine: StatisticsEngine instance
        events: Key events, optionally with boundary markers

    Returns:
        Counts of accepted and dropped events and boundaries seen
    """
    counts = {'accepted': 0, 'dropped': 0, 'boundaries': 0}

    for event in events:
        if is_boundary_event(event):
            engine.reset_sequence_boundary()
            counts['boundaries'] += 1
            continue

        if engine.record_keystroke(event) is None:
            counts['dropped'] += 1
        else:
            counts['accepted'] += 1

    return counts


def replay_text(engine, text: str, respect_passages: bool = True) -> Dict[str, int]:
    """
    Type text into a StatisticsEngine.

    Args:
        engine: StatisticsEngine instance
        text: Practice text
        respect_passages: If True, each blank-line separated passage starts
            a new bigram sequence and whitespace inside it is collapsed

    Returns:
        Counts of accepted and dropped events and passages typed
    """
    if not respect_passages:
        counts = replay_events(engine, text_to_key_events(text))
        counts['passages'] = 1 if text else 0
        return counts

    totals = {'accepted': 0, 'dropped': 0, 'boundaries': 0, 'passages': 0}
    for passage in split_passages(text):
        engine.reset_sequence_boundary()
        counts = replay_events(engine, text_to_key_events(passage))
        totals['accepted'] += counts['accepted']
        totals['dropped'] += counts['dropped']
        totals['boundaries'] += 1
        totals['passages'] += 1

    return totals
