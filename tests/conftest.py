import pytest


def _log_line(path, status=200, duration=None, verb="GET", agent="curl/8.5.0"):
    line = f'127.0.0.1 - - [21/Aug/2014:00:10:14 +0200] "{verb} {path} HTTP/1.1" {status} 512 "-" "{agent}"'
    if duration is not None:
        line += f" 221 {duration}"
    return line + "\n"


@pytest.fixture
def make_line():
    return _log_line


@pytest.fixture
def write_log(tmp_path, make_line):
    def _write(requests, name="access.log"):
        path = tmp_path / name
        path.write_text("".join(make_line(*request) for request in requests), encoding="utf-8")
        return path

    return _write
