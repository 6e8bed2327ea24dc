# attendance_kiosk/recognition/gemini.py
"""
GeminiMatcher - so sánh khuôn mặt bằng Gemini generateContent (REST).

Mỗi lần gọi gửi: prompt + ảnh probe + toàn bộ ảnh đăng ký của 1 sinh viên.
Model trả về JSON {"match": bool, "confidence": number} (ép bằng responseSchema).
"""
import json
import logging
from typing import Any, Dict, Optional

import requests

from ..data.models import Student, StudentImage
from .gateway import Comparison

logger = logging.getLogger(__name__)

PROMPT = """
Analyze the person in the first image (the candidate).
Compare them against the people in the subsequent images (the student record).
Is the candidate the same person as the student in the record?
Respond ONLY with a valid JSON object with two keys: "match" (boolean) and "confidence" (a number between 0 and 1).
Example: {"match": true, "confidence": 0.95}
"""

RESPONSE_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'match': {'type': 'BOOLEAN'},
        'confidence': {'type': 'NUMBER'},
    },
    'required': ['match', 'confidence'],
}


class MatcherError(RuntimeError):
    """API trả lỗi hoặc reply không đúng format."""


def image_to_part(image: StudentImage) -> Dict[str, Any]:
    return {'inlineData': {'mimeType': image.mime_type, 'data': image.to_base64()}}


def parse_comparison(payload: Dict[str, Any]) -> Comparison:
    """Lấy {"match", "confidence"} từ response generateContent."""
    try:
        parts = payload['candidates'][0]['content']['parts']
        text = ''.join(part.get('text', '') for part in parts).strip()
        result = json.loads(text)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise MatcherError(f"Malformed model reply: {e}") from e

    match = result.get('match') if isinstance(result, dict) else None
    confidence = result.get('confidence') if isinstance(result, dict) else None
    if not isinstance(match, bool) or isinstance(confidence, bool) \
            or not isinstance(confidence, (int, float)):
        raise MatcherError(f"Unexpected model reply: {text!r}")
    return Comparison(is_match=match, confidence=float(confidence))


class GeminiMatcher:
    """Callable matcher(probe, student) -> Comparison cho RecognitionGateway."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-pro",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 20.0,
        session: Optional[requests.Session] = None
    ):
        if not api_key:
            raise ValueError("API_KEY environment variable not set")
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self._session = session or requests.Session()

    def build_request(self, probe: StudentImage, student: Student) -> Dict[str, Any]:
        parts = [{'text': PROMPT}, image_to_part(probe)]
        parts.extend(image_to_part(image) for image in student.images)
        return {
            'contents': [{'parts': parts}],
            'generationConfig': {
                'responseMimeType': 'application/json',
                'responseSchema': RESPONSE_SCHEMA,
            },
        }

    def __call__(self, probe: StudentImage, student: Student) -> Comparison:
        url = f"{self.api_base}/models/{self.model}:generateContent"
        response = self._session.post(
            url,
            params={'key': self.api_key},
            json=self.build_request(probe, student),
            timeout=self.timeout,
        )
        if not response.ok:
            raise MatcherError(f"Gemini API error {response.status_code}: {response.text[:200]}")

        comparison = parse_comparison(response.json())
        logger.debug(
            f"{student.id}: match={comparison.is_match} confidence={comparison.confidence:.2f}"
        )
        return comparison
