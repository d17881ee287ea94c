from .llm import LLMClientPort
from .cache import ProfileCachePort
from .content import ContentsClientPort
from .sink import ProfileSinkPort

__all__ = [
    "LLMClientPort",
    "ProfileCachePort",
    "ContentsClientPort",
    "ProfileSinkPort",
]
