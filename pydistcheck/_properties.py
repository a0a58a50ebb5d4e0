"""
Fixture source discovery and key/value file reading.

Fixture files are plain ``key = value`` text, one file per parameterized
distribution, numbered sequentially per family:

    test.binomial.1.properties
    test.binomial.2.properties

Reading stops at the first missing number.

Author: pydistcheck Development Team
License: MIT
"""

import warnings
from pathlib import Path
from typing import Dict, List, Tuple, Union

PathLike = Union[str, Path]

_SEPARATORS = ('=', ':')


def _split_entry(line: str) -> Tuple[str, str]:
    """Split a logical line at the first unescaped separator."""
    for i, char in enumerate(line):
        if char in _SEPARATORS or char.isspace():
            key = line[:i]
            rest = line[i:].lstrip()
            if rest[:1] in _SEPARATORS:
                rest = rest[1:].lstrip()
            return key, rest
    return line, ""


def _logical_lines(text: str):
    """Yield lines with comments removed and continuations joined."""
    buffer = ""
    for raw in text.splitlines():
        line = raw.strip() if not buffer else raw.lstrip()
        if not buffer and (not line or line[0] in '#!'):
            continue
        # An odd number of trailing backslashes continues the line
        trailing = len(line) - len(line.rstrip('\\'))
        if trailing % 2 == 1:
            buffer += line[:-1]
            continue
        yield buffer + line
        buffer = ""
    if buffer:
        yield buffer


def parse_properties(text: str) -> Dict[str, str]:
    """
    Parse ``.properties`` formatted text.

    Parameters
    ----------
    text : str
        File contents

    Returns
    -------
    dict
        Key to raw string value. Later duplicates override earlier ones.
    """
    properties = {}
    for line in _logical_lines(text):
        key, value = _split_entry(line)
        properties[key] = value.strip()
    return properties


def read_properties(path: PathLike) -> Dict[str, str]:
    """
    Read a ``.properties`` file.

    Parameters
    ----------
    path : str or Path
        File to read

    Returns
    -------
    dict
        Key to raw string value
    """
    with open(path, 'r', encoding='utf-8') as f:
        return parse_properties(f.read())


def fixture_filename(family_name: str, index: int) -> str:
    """Name of the fixture file for a family at a 1-based index."""
    return f"test.{family_name}.{index}.properties"


def discover_fixture_sources(directory: PathLike,
                             family_name: str) -> List[Tuple[str, Dict[str, str]]]:
    """
    Find and read the numbered fixture files of a family.

    Parameters
    ----------
    directory : str or Path
        Directory holding the fixture files
    family_name : str
        Family name used in the file names

    Returns
    -------
    list of (name, properties)
        Sources in index order

    Raises
    ------
    FileNotFoundError
        If the directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Fixture directory not found: {directory}")

    sources = []
    index = 1
    while True:
        path = directory / fixture_filename(family_name, index)
        if not path.exists():
            break
        sources.append((path.name, read_properties(path)))
        index += 1

    if not sources:
        warnings.warn(
            f"No fixture files for '{family_name}' in {directory} "
            f"(expected {fixture_filename(family_name, 1)})"
        )
    return sources


__all__ = ['parse_properties', 'read_properties', 'fixture_filename',
           'discover_fixture_sources']
