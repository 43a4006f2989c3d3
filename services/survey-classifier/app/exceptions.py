"""
Classifier exception hierarchy

Every failure raised while sampling the model is fatal to the row being
classified. Sanitization of model fields never raises; it degrades to
conservative defaults instead.
"""
from typing import Any, Dict, Optional


class ClassifierError(Exception):
    """Base class for all classification failures"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form for logs and error payloads"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(ClassifierError):
    """Required configuration (the model credential) is missing"""
    pass


class TransportError(ClassifierError):
    """The model backend did not answer with a success status"""

    def __init__(self, status_code: Optional[int], body: str):
        if status_code is None:
            message = f"Gemini request failed: {body}"
        else:
            message = f"Gemini request failed: {status_code} {body}"
        super().__init__(message, {"status_code": status_code})
        self.status_code = status_code
        self.body = body


class EmptyResponseError(ClassifierError):
    """The model backend answered but carried no text payload"""
    pass


class MalformedPayloadError(ClassifierError):
    """The model text could not be decoded as a JSON object"""

    def __init__(self, message: str, raw_text: str):
        super().__init__(message, {"raw_length": len(raw_text)})
        self.raw_text = raw_text
