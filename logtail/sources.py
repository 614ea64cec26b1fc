"""Tail sources: turn configured file patterns into lists of candidate paths.

Two pattern dialects are supported:

* ``regex``: the directory part is taken literally and only the final path
  segment is a regular expression, matched against the entries of that one
  directory (no recursion).
* ``glob``: ``*``/``?`` stay inside one path segment, ``**`` crosses
  directories, ``[...]`` is a character class and ``{a,b}`` an alternation.
  The subtree below the longest wildcard-free prefix is walked on every call.
"""

import logging
import os
import re

logger = logging.getLogger(__name__)

GLOB_META_CHARS = "*?[{"
MAX_WALK_DEPTH = 100

_SEP = re.escape(os.sep)


class TailSource:
    """One configured pattern. Subclasses implement ``find_matching_files``."""

    def __init__(self, file_pattern: str):
        self.file_pattern = file_pattern

    def find_matching_files(self) -> list[str]:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}(file_pattern={self.file_pattern!r})"


class RegexTailSource(TailSource):
    def __init__(self, file_pattern: str):
        super().__init__(file_pattern)
        # Split before normalizing so a regex such as "." survives
        directory, name_pattern = os.path.split(file_pattern)
        self.base = os.path.abspath(directory)
        self._name_re = re.compile(name_pattern)

    def find_matching_files(self) -> list[str]:
        result = []
        try:
            with os.scandir(self.base) as entries:
                for entry in entries:
                    if self._name_re.fullmatch(entry.name) and not entry.is_dir():
                        result.append(entry.path)
        except FileNotFoundError:
            logger.debug("Source directory %s does not exist", self.base)
        except OSError as e:
            logger.error("Find matching files failed for %s: %s", self.base, e)

        logger.debug("Matched files for %s: %s", self.file_pattern, result)
        return result


class GlobTailSource(TailSource):
    def __init__(self, file_pattern: str):
        super().__init__(file_pattern)
        # Walked paths are absolute and normalized, so the pattern must be too
        file_pattern = os.path.abspath(file_pattern)
        self.base = glob_base_dir(file_pattern)
        self._path_re = re.compile(translate_glob(file_pattern))
        logger.info("Glob source pattern=%s base=%s", self.file_pattern, self.base)

    def matches(self, path: str) -> bool:
        return self._path_re.fullmatch(path) is not None

    def find_matching_files(self) -> list[str]:
        result = []
        # dirpath -> identities of the directory and all of its ancestors
        ancestors: dict[str, frozenset] = {}

        def _on_error(err: OSError):
            logger.debug("Walk of %s failed at %s: %s", self.base, err.filename, err)

        try:
            base_depth = self.base.rstrip(os.sep).count(os.sep)
            for dirpath, dirnames, filenames in os.walk(
                self.base, onerror=_on_error, followlinks=True,
            ):
                try:
                    st = os.stat(dirpath)
                except OSError as e:
                    _on_error(e)
                    dirnames[:] = []
                    continue
                # A directory that is its own ancestor closes a symlink cycle.
                # Aliases reached through unrelated paths are walked normally.
                identity = (st.st_dev, st.st_ino)
                chain = ancestors.get(os.path.dirname(dirpath), frozenset())
                if identity in chain:
                    logger.debug("Symlink cycle at %s, not descending", dirpath)
                    dirnames[:] = []
                    continue
                ancestors[dirpath] = chain | {identity}

                # Files sit one level below their directory
                if dirpath.rstrip(os.sep).count(os.sep) - base_depth >= MAX_WALK_DEPTH - 1:
                    dirnames[:] = []

                for name in filenames:
                    path = os.path.join(dirpath, name)
                    if self.matches(path) and os.path.isfile(path):
                        result.append(path)
        except Exception:
            logger.exception("Find matching files failed for %s", self.file_pattern)
            return []

        logger.debug("Matched files for %s: %s", self.file_pattern, result)
        return result


class SourceSet:
    """Union of every configured regex and glob source."""

    def __init__(self, regex_patterns: str | None = None, glob_patterns: str | None = None):
        self.sources: list[TailSource] = []
        for pattern in split_patterns(regex_patterns):
            self.sources.append(RegexTailSource(pattern))
        for pattern in split_patterns(glob_patterns):
            self.sources.append(GlobTailSource(pattern))

    def find_matching_files(self, predicate=None) -> list[str]:
        """Return matches from all sources, optionally filtered by ``predicate``.

        Duplicates across sources are kept; callers key by path.
        """
        result = []
        for source in self.sources:
            for path in source.find_matching_files():
                if predicate is None or predicate(path):
                    result.append(path)
        return result

    def __repr__(self):
        return f"SourceSet(sources={self.sources!r})"


def split_patterns(patterns: str | None) -> list[str]:
    """Split a comma-separated pattern string, dropping blank entries."""
    if not patterns:
        return []
    return [p.strip() for p in patterns.split(",") if p.strip()]


def _is_wildcard(segment: str) -> bool:
    return any(ch in GLOB_META_CHARS for ch in segment)


def glob_base_dir(pattern: str) -> str:
    """Longest wildcard-free directory prefix of ``pattern``, made absolute.

    The final segment never contributes, so a pattern without wildcards
    resolves to its parent directory.
    """
    segments = pattern.split(os.sep)
    base = ""
    for segment in segments[:-1]:
        if _is_wildcard(segment):
            break
        base += segment + os.sep
    return os.path.abspath(base)


def translate_glob(pattern: str) -> str:
    """Translate a path glob into a regular expression for ``re.fullmatch``."""
    out = []
    in_group = False
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c == "\\" and os.sep != "\\":
            if i < n:
                out.append(re.escape(pattern[i]))
                i += 1
            else:
                out.append(re.escape(c))
        elif c == "*":
            if i < n and pattern[i] == "*":
                out.append(".*")
                i += 1
            else:
                out.append(f"[^{_SEP}]*")
        elif c == "?":
            out.append(f"[^{_SEP}]")
        elif c == "[":
            start = i + 1 if i < n and pattern[i] in "!^" else i
            end = pattern.find("]", start)
            if end == -1 or end == start:
                out.append(re.escape(c))
                continue
            negate = start != i
            body = pattern[start:end].replace("\\", "\\\\")
            i = end + 1
            out.append(f"[{'^' if negate else ''}{body}]")
        elif c == "{":
            if in_group:
                raise ValueError(f"Nested groups are not supported: {pattern}")
            in_group = True
            out.append("(?:")
        elif c == "}" and in_group:
            in_group = False
            out.append(")")
        elif c == "," and in_group:
            out.append("|")
        else:
            out.append(re.escape(c))

    if in_group:
        raise ValueError(f"Missing '}}' in glob: {pattern}")
    return "".join(out)
