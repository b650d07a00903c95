from abc import ABC, abstractmethod
from typing import Dict, List


class LLMClient(ABC):
    provider: str = ""

    @abstractmethod
    def generate(self, messages: List[Dict], system: str = "") -> str:
        """Generate assistant text from chat messages"""
        pass
