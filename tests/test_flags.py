import pytest

from core.errors import InvalidFlagError, MissingFlagError
from utils.flags import (
    flags_to_string,
    parse_cpu_list,
    parse_duration,
    parse_flags,
    parse_int,
    require,
)


def test_parse_flags_pairs_and_bare_flags():
    flags = parse_flags(['--path', '/tmp/a', '--force', '--offset', '2'])
    assert flags == {'path': '/tmp/a', 'force': '', 'offset': '2'}


def test_parse_flags_keeps_negative_values():
    assert parse_flags(['--nice', '-5'])['nice'] == '-5'


def test_parse_flags_is_case_sensitive_and_ignores_strays():
    flags = parse_flags(['stray', '--Path', 'A', '--path', 'b'])
    assert flags == {'Path': 'A', 'path': 'b'}


def test_flags_to_string():
    assert flags_to_string(['--cpu', '4', '--timeout', '10']) == '--cpu 4 --timeout 10'
    assert flags_to_string([]) == ''


def test_require_and_parse_int():
    assert require({'name': 'nginx'}, 'name') == 'nginx'
    with pytest.raises(MissingFlagError, match="please input param: --name"):
        require({}, 'name')
    with pytest.raises(MissingFlagError):
        require({'name': ''}, 'name')

    assert parse_int({'offset': '3'}, 'offset', min_val=0) == 3
    with pytest.raises(InvalidFlagError, match="not an integer"):
        parse_int({'offset': 'x'}, 'offset')
    with pytest.raises(InvalidFlagError, match=">= 1"):
        parse_int({'length': '0'}, 'length', min_val=1)


@pytest.mark.parametrize("value,seconds", [
    ("10", 10),
    ("10s", 10),
    ("2m", 120),
    ("1h:30m", 5400),
    ("1h:2m:3s", 3723),
    ("2m:5s", 125),
])
def test_parse_duration(value, seconds):
    assert parse_duration(value) == seconds


@pytest.mark.parametrize("value", ["", "5x", "s", "1h:xm", "-3"])
def test_parse_duration_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_parse_cpu_list():
    assert parse_cpu_list("3") == [3]
    assert parse_cpu_list("0,2-4") == [0, 2, 3, 4]


@pytest.mark.parametrize("value,message", [
    ("1,,2", "format error"),
    ("a", "format error"),
    ("4-2", "larger than ending"),
    ("1,0-2", "duplicate cpu id: 1"),
])
def test_parse_cpu_list_errors(value, message):
    with pytest.raises(ValueError, match=message):
        parse_cpu_list(value)
