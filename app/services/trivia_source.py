import html
import logging
from typing import Dict, List

import requests

from app.exceptions import UpstreamError

logger = logging.getLogger(__name__)

class TriviaSource:
    """Client for an Open Trivia DB compatible endpoint"""

    def __init__(self, base_url: str, timeout: float = 10, session: requests.Session = None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_questions(self, amount: int) -> List[Dict]:
        """
        Fetch ``amount`` random multiple-choice questions.

        Returns ``[{"prompt", "correct_answer", "distractors"}]`` with HTML
        entities already decoded.
        """
        try:
            response = self.session.get(
                self.base_url,
                params={"amount": amount, "type": "multiple"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Trivia source request failed: {e}")
            raise UpstreamError("Failed to fetch trivia questions") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not results or data.get("response_code", 0) != 0:
            logger.error(f"Trivia source returned no usable results: response_code={data.get('response_code') if isinstance(data, dict) else None}")
            raise UpstreamError("Failed to fetch trivia questions")

        try:
            return [
                {
                    "prompt": html.unescape(item["question"]),
                    "correct_answer": html.unescape(item["correct_answer"]),
                    "distractors": [html.unescape(answer) for answer in item.get("incorrect_answers", [])],
                }
                for item in results
            ]
        except (KeyError, TypeError) as e:
            logger.error(f"Malformed trivia payload: {e}")
            raise UpstreamError("Failed to fetch trivia questions") from e
