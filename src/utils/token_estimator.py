import json
import math
from functools import lru_cache
from typing import Any

import tiktoken

from utils.get_logger import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-4"


@lru_cache(maxsize=4)
def _get_encoding(model_id: str):
    try:
        return tiktoken.encoding_for_model(model_id)
    except KeyError:
        return tiktoken.get_encoding("cl100k_base")


def estimate_tokens(obj: Any, model_id: str = DEFAULT_MODEL) -> int:
    """Count the tokens of ``obj`` serialised as compact JSON.

    Falls back to ~4 characters per token if the encoder cannot be loaded
    (tiktoken downloads its BPE files on first use).
    """
    text = obj if isinstance(obj, str) else json.dumps(obj, default=str, separators=(",", ":"))
    try:
        return len(_get_encoding(model_id).encode(text, disallowed_special=()))
    except Exception as e:
        logger.warning(f"Token estimation failed, using character heuristic: {e}")
        return math.ceil(len(text) / 4)
