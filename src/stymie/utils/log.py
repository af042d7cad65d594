import sys

# Same markers for every command so the single outcome line is easy to grep.
MARKERS = {
    "success": "[+]",
    "info": "[*]",
    "warning": "[~]",
    "error": "[!]",
}


def _emit(level: str, msg: str) -> None:
    stream = sys.stderr if level in ("warning", "error") else sys.stdout
    print(f"{MARKERS[level]} {msg}", file=stream)


def success(msg: str) -> None:
    _emit("success", msg)


def info(msg: str) -> None:
    _emit("info", msg)


def warn(msg: str) -> None:
    _emit("warning", msg)


def error(msg: str) -> None:
    _emit("error", msg)
