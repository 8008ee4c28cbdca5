import codecs
import logging
import re
from typing import AsyncIterator, Iterable, List, Optional, Tuple

from mirror_edge.edge.substitution import RewriteContext
from mirror_edge.errors import DecodingError

logger = logging.getLogger("uvicorn.error")

DEFAULT_ENCODING = "utf-8"

_CHARSET_RE = re.compile(r"""charset\s*=\s*["']?([^"';\s]+)""", re.IGNORECASE)


def is_processable(content_type: Optional[str], processable: Iterable[str]) -> bool:
    """Substring match of ``content_type`` against the configured types."""
    if not content_type:
        return False
    content_type = content_type.lower()
    return any(t.lower() in content_type for t in processable)


def parse_charset(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    match = _CHARSET_RE.search(content_type)
    return match.group(1) if match else None


def decode_text(data: bytes, encoding: str) -> str:
    try:
        codecs.lookup(encoding)
        return data.decode(encoding)
    except LookupError:
        raise DecodingError(encoding, "unknown encoding")
    except UnicodeError as e:
        raise DecodingError(encoding, str(e))


def encode_text(text: str, encoding: str) -> bytes:
    try:
        return text.encode(encoding)
    except (LookupError, UnicodeError) as e:
        raise DecodingError(encoding, str(e))


def rewrite_body(
    data: bytes, content_type: Optional[str], context: RewriteContext
) -> Tuple[bytes, bool]:
    """
    Replace target-domain references in a textual body.

    The body is decoded with the declared charset (UTF-8 when none is given)
    and re-encoded with the same one. Returns the new bytes and whether a
    rewrite happened; undecodable bodies come back untouched.
    """
    encoding = parse_charset(content_type) or DEFAULT_ENCODING
    try:
        text = decode_text(data, encoding)
        rewritten = context.substitute(text)
        if rewritten == text:
            return data, False
        return encode_text(rewritten, encoding), True
    except DecodingError as e:
        logger.warning(
            f"Body of {content_type!r} from {context.target_domain} passed through: {e}"
        )
        return data, False


async def buffer_body(
    chunks: AsyncIterator[bytes], limit: int
) -> Tuple[bytes, Optional[AsyncIterator[bytes]]]:
    """
    Read ``chunks`` fully, up to ``limit`` bytes.

    Returns ``(body, None)`` when everything fit. Otherwise returns the
    prefix read so far and an iterator that replays it followed by the rest
    of ``chunks``.
    """
    buffered: List[bytes] = []
    size = 0
    async for chunk in chunks:
        buffered.append(chunk)
        size += len(chunk)
        if size > limit:
            return b"".join(buffered), _replay(buffered, chunks)
    return b"".join(buffered), None


async def _replay(
    buffered: List[bytes], rest: AsyncIterator[bytes]
) -> AsyncIterator[bytes]:
    for chunk in buffered:
        yield chunk
    async for chunk in rest:
        yield chunk
