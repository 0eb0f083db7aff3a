"""
Map and Scenario Ingestion
Readers for movingai benchmark files (http://movingai.com/benchmarks/formats.html).

Only the first map in a file is read. Passable symbols are '.' and 'G';
'@', 'O', 'T', 'S' and 'W' are impassable.
"""

import logging
import numpy as np
from pathlib import Path
from typing import Dict, List, Tuple, Optional, Any, Union
from dataclasses import dataclass

from gridist.environment.grid_model import GridModel
from gridist.exceptions import MapParseError
from gridist.types import Cell

logger = logging.getLogger(__name__)

PASSABLE_SYMBOLS = frozenset('.G')
IMPASSABLE_SYMBOLS = frozenset('@OTSW')


@dataclass
class MapData:
    """Parsed octile map."""
    height: int
    width: int
    blocked: np.ndarray  # [row, col], True where impassable
    source: Optional[str] = None

    def to_grid_model(self, config: Optional[Dict[str, Any]] = None) -> GridModel:
        return GridModel(config or {}, blocked=self.blocked)


@dataclass
class ScenarioEntry:
    """One row of a .scen file. Cells are (row, col)."""
    bucket: int
    map_name: str
    map_width: int
    map_height: int
    start: Cell
    goal: Cell
    optimal_length: float


class _Cursor:
    """Line/column tracking over the raw text, for error reporting."""

    def __init__(self, text: str, source: Optional[str]):
        self.text = text
        self.source = source
        self.position = 0
        self.line = 0
        self.column = 0

    def at_end(self) -> bool:
        return self.position >= len(self.text)

    def peek(self) -> str:
        return self.text[self.position]

    def shift(self):
        if self.position < len(self.text):
            if self.text[self.position] == '\n':
                self.line += 1
                self.column = 0
            else:
                self.column += 1
            self.position += 1

    def skip_ws(self):
        while not self.at_end() and self.peek().isspace():
            self.shift()

    def read_word(self) -> str:
        self.skip_ws()
        start = self.position
        while not self.at_end() and not self.peek().isspace():
            self.shift()
        return self.text[start:self.position]

    def error(self, description: str) -> MapParseError:
        return MapParseError(description, self.line, self.column, self.source)

    def expect(self, word: str):
        read = self.read_word()
        if read != word:
            raise self.error(f"Expected '{word}', found '{read}'.")

    def read_constant(self, name: str) -> int:
        self.expect(name)
        word = self.read_word()
        try:
            return int(word)
        except ValueError:
            raise self.error(f"Expected integer, found '{word}'.")


def parse_map(text: str, source: Optional[str] = None) -> MapData:
    """
    Parse an octile map.

    Args:
        text: Full file contents
        source: Name used in error messages

    Returns:
        Parsed map
    """
    cursor = _Cursor(text, source)
    cursor.expect('type')
    cursor.expect('octile')

    height = cursor.read_constant('height')
    width = cursor.read_constant('width')
    cursor.expect('map')

    blocked = np.zeros((height, width), dtype=bool)

    for row in range(height):
        cursor.skip_ws()
        for col in range(width):
            if cursor.at_end():
                raise cursor.error("Unexpected end of file.")
            symbol = cursor.peek()
            if symbol in PASSABLE_SYMBOLS:
                pass
            elif symbol in IMPASSABLE_SYMBOLS:
                blocked[row, col] = True
            elif symbol in '\r\n':
                raise cursor.error("Unexpected end of line.")
            else:
                raise cursor.error(f"Unrecognized symbol: {symbol}")
            cursor.shift()

    return MapData(height=height, width=width, blocked=blocked, source=source)


def parse_map_rows(rows: List[str]) -> MapData:
    """Build a map straight from its symbol rows, without the header."""
    header = f"type octile\nheight {len(rows)}\nwidth {len(rows[0]) if rows else 0}\nmap\n"
    return parse_map(header + '\n'.join(rows))


def load_map(path: Union[str, Path]) -> MapData:
    path = Path(path)
    with open(path, 'r') as f:
        data = parse_map(f.read(), source=str(path))
    logger.info(f"Loaded map {path.name}: {data.height}x{data.width}, "
                f"{int(data.blocked.sum())} blocked cells")
    return data


def parse_scenario(text: str, source: Optional[str] = None) -> List[ScenarioEntry]:
    """
    Parse a .scen file.

    Rows are tab separated: bucket, map, width, height, start x, start y,
    goal x, goal y, optimal length. Coordinates are converted to (row, col).
    """
    lines = text.splitlines()
    entries = []

    start_line = 0
    if lines and lines[0].strip().lower().startswith('version'):
        start_line = 1

    for index in range(start_line, len(lines)):
        line = lines[index]
        if not line.strip():
            continue
        fields = line.split('\t') if '\t' in line else line.split()
        if len(fields) != 9:
            raise MapParseError(f"Expected 9 fields, found {len(fields)}.", index, 0, source)
        try:
            entries.append(ScenarioEntry(
                bucket=int(fields[0]),
                map_name=fields[1],
                map_width=int(fields[2]),
                map_height=int(fields[3]),
                start=(int(fields[5]), int(fields[4])),
                goal=(int(fields[7]), int(fields[6])),
                optimal_length=float(fields[8]),
            ))
        except ValueError as e:
            raise MapParseError(f"Malformed scenario row: {e}", index, 0, source)

    return entries


def load_scenario(path: Union[str, Path]) -> List[ScenarioEntry]:
    path = Path(path)
    with open(path, 'r') as f:
        entries = parse_scenario(f.read(), source=str(path))
    logger.info(f"Loaded scenario {path.name}: {len(entries)} entries")
    return entries
