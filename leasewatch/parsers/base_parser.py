from typing import Any, Dict, Iterator, Tuple


class BaseParser:
    @classmethod
    def parse(cls, command: str, raw_text: str, source: str = None) -> Dict[str, Any]:
        raise NotImplementedError("parse() must be implemented by the concrete parser")

    @staticmethod
    def significant_lines(raw_text: str) -> Iterator[Tuple[int, str]]:
        """Непустые строки без пробелов по краям, с номером строки (с 1)."""
        for lineno, line in enumerate(raw_text.splitlines(), start=1):
            line = line.strip()
            if line:
                yield lineno, line
