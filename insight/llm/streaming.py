"""
Simulated Streaming

Providers without native streaming still honour the streaming contract:
the final text is cut into small chunks that are delivered one by one
with a short pause between them.
"""

import random
import time
from typing import Callable, List, Optional


AVERAGE_CHUNK_SIZE = 15
CHUNK_JITTER = 5


def split_into_chunks(
    text: str,
    average: int = AVERAGE_CHUNK_SIZE,
    jitter: int = CHUNK_JITTER,
    rng: Optional[random.Random] = None
) -> List[str]:
    """Split text into chunks of average +/- jitter characters.

    The chunks always concatenate back to the original text.

    Example:
        >>> "".join(split_into_chunks("hello world" * 10)) == "hello world" * 10
        True
    """
    if average - jitter < 1:
        raise ValueError("average - jitter must be at least 1")
    rng = rng or random.Random()

    chunks = []
    position = 0
    while position < len(text):
        size = rng.randint(average - jitter, average + jitter)
        chunks.append(text[position:position + size])
        position += size
    return chunks


def deliver_chunks(
    text: str,
    on_chunk: Callable[[str], None],
    delay: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
    on_progress: Optional[Callable[[float], None]] = None,
    rng: Optional[random.Random] = None
) -> str:
    """Deliver text to on_chunk piece by piece.

    Args:
        text: Complete response text
        on_chunk: Receives each chunk in order
        delay: Pause between chunks in seconds
        sleep: Sleep function (injectable for tests)
        on_progress: Receives the delivered fraction (0.0-1.0) after each chunk
        rng: Random source for chunk sizes

    Returns:
        The full text
    """
    chunks = split_into_chunks(text, rng=rng)
    for index, chunk in enumerate(chunks, start=1):
        on_chunk(chunk)
        if on_progress:
            on_progress(index / len(chunks))
        if index < len(chunks) and delay > 0:
            sleep(delay)
    return text
