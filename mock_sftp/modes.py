"""
Open-mode decoding.

paramiko hands the server POSIX-style ``os.O_*`` flags. OpenMode turns those
into the handful of booleans the open handler cares about, plus a canonical
name for logging ("read", "write-truncate", "create-exclusive", ...).
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class OpenMode:
    readable: bool = True
    writable: bool = False
    create: bool = False
    truncate: bool = False
    exclusive: bool = False
    append: bool = False

    @classmethod
    def from_flags(cls, flags: int) -> "OpenMode":
        access = flags & (os.O_RDONLY | os.O_WRONLY | os.O_RDWR)
        exclusive = bool(flags & os.O_EXCL)
        return cls(
            readable=access != os.O_WRONLY,
            writable=access in (os.O_WRONLY, os.O_RDWR),
            create=bool(flags & os.O_CREAT) or exclusive,
            truncate=bool(flags & os.O_TRUNC),
            exclusive=exclusive,
            append=bool(flags & os.O_APPEND),
        )

    @classmethod
    def parse(cls, name: str) -> "OpenMode":
        try:
            return _CANONICAL[name]
        except KeyError:
            raise ValueError(f"Unknown open mode: {name!r}") from None

    @property
    def name(self) -> str:
        if self.readable and self.writable:
            base = "read-write"
        elif self.writable:
            base = "write"
        else:
            base = "read"

        if self.exclusive:
            if self.truncate:
                return f"{base}-truncate-exclusive"
            return "create-exclusive" if base == "write" else f"{base}-create-exclusive"
        if self.append:
            return "append" if base == "write" else f"{base}-append"
        if self.truncate:
            return f"{base}-truncate" if self.create else f"{base}-truncate-existing"
        if self.create:
            return f"{base}-create"
        return base

    def __str__(self) -> str:
        return self.name


_CANONICAL = {
    mode.name: mode
    for mode in (
        OpenMode(),
        OpenMode(readable=True, writable=True),
        OpenMode(readable=False, writable=True),
        OpenMode(readable=False, writable=True, create=True),
        OpenMode(readable=False, writable=True, create=True, truncate=True),
        OpenMode(readable=False, writable=True, create=True, append=True),
        OpenMode(readable=True, writable=True, create=True),
        OpenMode(readable=True, writable=True, create=True, truncate=True),
        OpenMode(readable=True, writable=True, create=True, append=True),
        OpenMode(readable=False, writable=True, create=True, exclusive=True),
        OpenMode(readable=False, writable=True, create=True, truncate=True, exclusive=True),
        OpenMode(readable=True, writable=True, create=True, exclusive=True),
    )
}
