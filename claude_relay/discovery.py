"""Find model-remapping injection points in the minified cli.js bundle.

Minified symbol names drift between Copilot Chat releases, so every signature
matches on shape (keyword sequences, parameter destructuring, nearby literals)
and copies the old text verbatim out of the content. Each new text is the old
text plus a surgical insertion, so undoing the replace restores the original.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace

from .mapping import LOOKUP_GLOBAL

logger = logging.getLogger(__name__)

_IDENT = r"[\w$]+"


@dataclass(frozen=True)
class PatchPoint:
    name: str
    old: str
    new: str
    comment: str
    # offset of `old` in the scanned content; -1 when the matcher did not record one
    start: int = -1


class SignatureMatcher:
    name = ""
    comment = ""

    def match(self, content: str) -> PatchPoint | None:
        raise NotImplementedError

    def point(self, old: str, at: int, insert: str, start: int = -1) -> PatchPoint:
        return PatchPoint(self.name, old, old[:at] + insert + old[at:], self.comment, start)


class StreamingGeneratorMatcher(SignatureMatcher):
    """Main conversation generator: async function*X(A,Q,B){let G=Y(B) ...model:B.model"""

    name = "streaming-generator"
    comment = "Map model ID at entry of main conversation streaming function"

    anchor = "async function*"
    window = 200
    head = re.compile(rf"async function\*{_IDENT}\(A,Q,B\)\{{")
    call = re.compile(rf"let {_IDENT}={_IDENT}\(B\)")
    nearby = "model:B.model"

    def match(self, content: str) -> PatchPoint | None:
        start = content.find(self.anchor)
        while start >= 0:
            snippet = content[start:start + self.window]
            head = self.head.match(snippet)
            if head and self.nearby in snippet:
                call = self.call.search(snippet, head.end())
                if call:
                    return self.point(
                        snippet[:call.end()], head.end(), f"B.model={LOOKUP_GLOBAL}(B.model);", start
                    )
            start = content.find(self.anchor, start + len(self.anchor))
        return None


class RegexSignature(SignatureMatcher):
    """Single-occurrence shape; `insert` goes at the end of the `at` group."""

    pattern: re.Pattern[str]
    insert = ""

    def match(self, content: str) -> PatchPoint | None:
        found = self.pattern.search(content)
        if not found:
            return None
        return self.point(found.group(0), found.end("at") - found.start(), self.insert, found.start())


class AnsiStripMatcher(SignatureMatcher):
    name = "ansi-strip-model"
    comment = "Wrap ANSI strip function return with model mapping (used as model:X(Y))"

    pattern = re.compile(
        rf"function {_IDENT}\(A\)\{{return (?P<body>A\.replace\(/\\\[\(1\|2\)m\\\]/gi,\"\"\))\}}"
    )

    def match(self, content: str) -> PatchPoint | None:
        found = self.pattern.search(content)
        if not found:
            return None
        old = found.group(0)
        body_start = found.start("body") - found.start()
        body_end = found.end("body") - found.start()
        new = old[:body_start] + f"{LOOKUP_GLOBAL}(" + old[body_start:body_end] + ")" + old[body_end:]
        return PatchPoint(self.name, old, new, self.comment, found.start())


class ClientFactoryMatcher(RegexSignature):
    name = "client-factory"
    comment = "Map model ID at entry of Anthropic SDK client factory"

    pattern = re.compile(
        rf"async function {_IDENT}\(\{{apiKey:A,maxRetries:Q,model:B,fetchOverride:G\}}\)(?P<at>\{{)let Z="
    )
    insert = f'B={LOOKUP_GLOBAL}(B||"");'


# result order is this order, not the order spans appear in the file
MATCHERS: tuple[SignatureMatcher, ...] = (
    StreamingGeneratorMatcher(),
    AnsiStripMatcher(),
    ClientFactoryMatcher(),
)


def discover(content: str, matchers: tuple[SignatureMatcher, ...] = MATCHERS) -> list[PatchPoint]:
    points: list[PatchPoint] = []
    spans: list[tuple[int, int]] = []
    for matcher in matchers:
        try:
            point = matcher.match(content)
        except Exception:
            logger.warning("signature %s raised during discovery; skipped", matcher.name, exc_info=True)
            continue
        if point is None:
            logger.debug("signature %s: no match", matcher.name)
            continue

        start = point.start if point.start >= 0 else content.find(point.old)
        end = start + len(point.old)
        if start < 0 or content[start:end] != point.old:
            logger.warning("signature %s reported text not found at its offset; skipped", matcher.name)
            continue
        if any(start < s_end and s_start < end for s_start, s_end in spans):
            logger.warning("signature %s overlaps an earlier patch point; skipped", matcher.name)
            continue
        spans.append((start, end))
        points.append(replace(point, start=start))
    return points


# Literal 0.37.x text of the signatures the remote script can patch. The remote
# path has no structural scan, so it only ever patches these exact strings.
KNOWN_REMOTE_TEXT = (
    r'function Gu(A){return A.replace(/\[(1|2)m\]/gi,"")}',
    "async function nH({apiKey:A,maxRetries:Q,model:B,fetchOverride:G}){let Z=",
)


def remote_signatures() -> list[PatchPoint]:
    points: list[PatchPoint] = []
    for text in KNOWN_REMOTE_TEXT:
        points.extend(discover(text))
    return points
