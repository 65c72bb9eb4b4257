"""Formatting of resolved blocks for embedding in a prompt.

Each block is a labelled, fenced region so the model can tell referenced
material from the user's own prompt:

    In buffer `notes.org` (lines 1-12):

    ```org
    ...
    ```

    In file `src/app.py`:

    ```python
    ...
    ```

    Function git-branch:

    ```
    main
    ```
"""

import os
import re
from functools import lru_cache
from typing import Optional

from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound

from .models import ResolvedBlock, SourceKind

# Suffix -> fence language for common cases, checked before asking Pygments
EXTENSION_MAP = {
    '.py': 'python',
    '.js': 'javascript',
    '.ts': 'typescript',
    '.tsx': 'tsx',
    '.jsx': 'jsx',
    '.rb': 'ruby',
    '.go': 'go',
    '.rs': 'rust',
    '.java': 'java',
    '.c': 'c',
    '.cpp': 'cpp',
    '.h': 'c',
    '.hpp': 'cpp',
    '.cs': 'csharp',
    '.sh': 'bash',
    '.el': 'elisp',
    '.json': 'json',
    '.yaml': 'yaml',
    '.yml': 'yaml',
    '.html': 'html',
    '.css': 'css',
    '.sql': 'sql',
    '.md': 'markdown',
    '.org': 'org',
    '.toml': 'toml',
    '.txt': '',
}

_BACKTICK_RUN = re.compile(r'`{3,}')


@lru_cache(maxsize=256)
def language_for(filename: str) -> str:
    """Fence language tag for a file name, or '' when unknown."""
    _, ext = os.path.splitext(filename)
    if ext in EXTENSION_MAP:
        return EXTENSION_MAP[ext]
    if ext.lower() in EXTENSION_MAP:
        return EXTENSION_MAP[ext.lower()]
    try:
        lexer = get_lexer_for_filename(os.path.basename(filename))
    except ClassNotFound:
        return ''
    return lexer.aliases[0] if lexer.aliases else ''


def fence_for(body: str) -> str:
    """Backtick fence longer than any fence inside ``body``."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(body)), default=0)
    return '`' * max(3, longest + 1)


def _fenced(body: str, language: str = '') -> str:
    fence = fence_for(body)
    if not body.endswith('\n'):
        body += '\n'
    return f"{fence}{language}\n{body}{fence}\n"


def wrap(block: Optional[ResolvedBlock], language_hints: bool = True) -> str:
    """Render a block as prompt text. Absent or empty blocks render as ''."""
    if block is None or block.is_empty:
        return ""

    if block.kind == SourceKind.FUNCTION:
        # Fixed format, the result is inserted verbatim
        return f"Function {block.label}:\n\n```\n{block.body}\n```\n"

    language = ''
    if language_hints:
        language = language_for(block.path or block.label)

    if block.kind == SourceKind.BUFFER:
        header = f"In buffer `{block.label}`"
        if block.span:
            header += f" (lines {block.span[0]}-{block.span[1]})"
    else:
        header = f"In file `{block.label}`"

    return f"{header}:\n\n{_fenced(block.body, language)}"
