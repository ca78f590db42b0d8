from typing import Any, Dict


class BaseNormalizer:
    @classmethod
    def normalize(cls, parsed_data: Dict[str, Any], source: str) -> Dict[str, Any]:
        raise NotImplementedError("Implement in subclass")
