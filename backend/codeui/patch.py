"""
Merging model output into the current document.

Follow-up generations answer with SEARCH/REPLACE blocks::

    <<<<<<< SEARCH
    [exact existing content]
    =======
    [replacement content]
    >>>>>>> REPLACE

First generations (and models that ignore the block format) answer with a
whole document, possibly wrapped in prose or a fenced code block.
"""

import re
from dataclasses import dataclass
from typing import List

from codeui.logger import get_logger

logger = get_logger(__name__)

PATCH_RE = re.compile(
    r"<<<<<<< SEARCH\r?\n(.*?)\r?\n=======\r?\n(.*?)\r?\n>>>>>>> REPLACE",
    re.DOTALL,
)
HTML_FENCE_RE = re.compile(r"```html?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
DOCTYPE_DOCUMENT_RE = re.compile(r"<!DOCTYPE.*?</html>", re.DOTALL | re.IGNORECASE)
HTML_DOCUMENT_RE = re.compile(r"<html.*?</html>", re.DOTALL | re.IGNORECASE)
DOCUMENT_START_RE = re.compile(r"^(<!DOCTYPE|<html)", re.IGNORECASE)


@dataclass
class Patch:
    search: str
    replace: str


@dataclass
class PatchResult:
    content: str
    applied: int = 0
    skipped: int = 0

    @property
    def changed(self) -> bool:
        return self.applied > 0


def is_complete_document(text: str) -> bool:
    return bool(DOCUMENT_START_RE.match(text.strip()))


def extract_html(content: str) -> str:
    """Pull a complete HTML document out of arbitrary model output"""
    trimmed = content.strip()
    if is_complete_document(trimmed):
        return trimmed

    blocks = HTML_FENCE_RE.findall(content)
    if blocks:
        return "\n".join(blocks).strip()

    doctype_match = DOCTYPE_DOCUMENT_RE.search(content)
    if doctype_match:
        return doctype_match.group(0).strip()

    html_match = HTML_DOCUMENT_RE.search(content)
    if html_match:
        return html_match.group(0).strip()

    return trimmed


def parse_patches(ai_output: str) -> List[Patch]:
    return [
        Patch(search=search.strip(), replace=replace.strip())
        for search, replace in PATCH_RE.findall(ai_output)
    ]


def apply_patches(document: str, patches: List[Patch]) -> PatchResult:
    """Apply each patch to the first exact occurrence; non-matching ones are skipped"""
    result = PatchResult(content=document)
    for patch in patches:
        if patch.search and patch.search in result.content:
            result.content = result.content.replace(patch.search, patch.replace, 1)
            result.applied += 1
        else:
            result.skipped += 1
    return result


def apply_search_replace(document: str, ai_output: str) -> str:
    """Merge a follow-up response into the document; never raises"""
    patches = parse_patches(ai_output)
    result = apply_patches(document, patches)
    logger.info(
        f"Patch blocks: {len(patches)} found, {result.applied} applied, {result.skipped} skipped"
    )

    if result.content == document:
        extracted = extract_html(ai_output)
        if is_complete_document(extracted):
            logger.info("No patch applied, using full document from response")
            return extracted

    return result.content
