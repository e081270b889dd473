"""
Error taxonomy for playlist parsing, fetching and background jobs.
"""


class M3UFilterError(Exception):
    pass


class PlaylistParseError(M3UFilterError):
    """The playlist text is structurally invalid."""

    kind = "invalid_playlist"

    def __init__(self, message, line=None):
        super().__init__(message)
        self.line = line

    def to_dict(self):
        return {"error": str(self), "kind": self.kind, "line": self.line}


class MissingHeaderError(PlaylistParseError):
    kind = "missing_header"

    def __init__(self, line=None):
        super().__init__("Playlist is missing the #EXTM3U header", line)


class OrphanUrlError(PlaylistParseError):
    kind = "orphan_url"

    def __init__(self, line):
        super().__init__(
            f"Stream URL encountered without preceding EXTINF at line {line}", line
        )


class DanglingExtinfError(PlaylistParseError):
    kind = "dangling_extinf"

    def __init__(self, line=None):
        message = "Playlist ended before providing a stream URL for the final EXTINF entry"
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, line)


class EmptyResultError(M3UFilterError):
    """Raised by callers that refuse a playlist with a header but no entries."""

    def __init__(self, message="Playlist contains no channels"):
        super().__init__(message)


class FetchError(M3UFilterError):
    pass


class InvalidSourceError(FetchError):
    pass


class FetchTimeoutError(FetchError):
    pass


class UpstreamError(FetchError):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class JobCancelledError(M3UFilterError):
    pass
