"""Unit tests for building erl remote shell arguments."""

import re

import pytest

from remsh.modules.args_builder import (
    ConnectionArgsBuilder,
    NamingConflictError,
    SequenceCounter,
    TargetRequiredError,
    is_long_name,
)
from remsh.modules.option_splitter import LONG_NAME, SHORT_NAME, ConnectionArgsError, split

SUFFIX = ["-hidden", "-newshell", "-env", "TERM", "vt100"]


class TestIsLongName:
    @pytest.mark.parametrize(
        "target,expected",
        [
            ("foo@bar.com", True),
            ("foo@10.0.0.1", True),
            ("foo@bar", False),
            ("foo", False),
            ("foo.bar", False),
        ],
    )
    def test_classification(self, target, expected):
        assert is_long_name(target) is expected


class TestSequenceCounter:
    def test_strictly_increases(self):
        counter = SequenceCounter(seed=7)
        assert counter.next() == 8
        assert counter.next() == 9
        assert counter.value == 9

    def test_random_seed_is_non_zero(self):
        assert SequenceCounter().value > 0


class TestBuildShortTarget:
    """Short target names need no local naming flag."""

    def test_short_target_without_naming_flags(self, builder):
        args = builder.build("foo", [], SequenceCounter(seed=1), pid=99)

        assert args.argv == ["-remsh", "foo", *SUFFIX]
        assert args.argv[-7:] == ["-remsh", "foo", "-hidden", "-newshell", "-env", "TERM", "vt100"]

    def test_short_target_keeps_supplied_options_in_order(self, builder):
        options = split(["-setcookie abc", "-sname me", "-kernel net_ticktime 10"])
        args = builder.build("foo", options, SequenceCounter(seed=1), pid=99)

        assert args.argv == [
            "-setcookie",
            "abc",
            "-sname",
            "me",
            "-kernel",
            "net_ticktime",
            "10",
            "-remsh",
            "foo",
            *SUFFIX,
        ]

    def test_short_target_does_not_touch_counter(self, builder):
        counter = SequenceCounter(seed=5)
        builder.build("foo", [], counter, pid=99)
        assert counter.value == 5


class TestBuildLongTarget:
    """Long target names get a synthesized long local name."""

    def test_synthesizes_long_name(self, builder):
        args = builder.build("foo@bar.com", [], SequenceCounter(seed=10), pid=4242)

        assert args.argv[:2] == ["-name", "remsh-4242-11@dev.example.com"]
        assert args.argv[2:] == ["-remsh", "foo@bar.com", *SUFFIX]
        assert args.argv.count("-name") == 1

    def test_name_shape(self, builder):
        args = builder.build("foo@bar.com", [], SequenceCounter(), pid=123)
        name = args.argv[args.argv.index("-name") + 1]
        assert re.fullmatch(r"remsh-123-\d+@dev\.example\.com", name)

    def test_counter_increases_across_builds(self, builder):
        counter = SequenceCounter(seed=1)
        first = builder.build("foo@bar.com", [], counter, pid=1).argv[1]
        second = builder.build("foo@bar.com", [], counter, pid=1).argv[1]

        assert first == "remsh-1-2@dev.example.com"
        assert second == "remsh-1-3@dev.example.com"

    def test_synthesized_name_follows_user_options(self, builder):
        args = builder.build("foo@bar.com", split(["-setcookie c"]), SequenceCounter(seed=0), pid=1)
        assert args.argv[:4] == ["-setcookie", "c", "-name", "remsh-1-1@dev.example.com"]

    def test_existing_long_name_is_kept(self, builder, domain_provider):
        counter = SequenceCounter(seed=3)
        args = builder.build("foo@bar.com", split(["-name me@here.lan"]), counter, pid=1)

        assert args.argv[:2] == ["-name", "me@here.lan"]
        assert args.argv.count("-name") == 1
        assert counter.value == 3
        domain_provider.domain.assert_not_called()

    def test_custom_prefix(self, domain_provider):
        builder = ConnectionArgsBuilder(domain_provider, node_prefix="dbg")
        args = builder.build("foo@bar.com", [], SequenceCounter(seed=0), pid=5)
        assert args.argv[1] == "dbg-5-1@dev.example.com"

    def test_loopback_domain(self, domain_provider):
        domain_provider.domain.return_value = "127.0.0.1"
        builder = ConnectionArgsBuilder(domain_provider)
        args = builder.build("foo@bar.com", [], SequenceCounter(seed=0), pid=5)
        assert args.argv[1] == "remsh-5-1@127.0.0.1"


class TestBuildErrors:
    @pytest.mark.parametrize("target", ["", "   "])
    def test_blank_target(self, builder, target):
        with pytest.raises(TargetRequiredError):
            builder.build(target, [], SequenceCounter())

    def test_long_target_with_short_name_conflicts(self, builder):
        with pytest.raises(NamingConflictError, match="foo@bar.com"):
            builder.build("foo@bar.com", split(["-sname me"]), SequenceCounter())

    def test_conflict_does_not_advance_counter(self, builder):
        counter = SequenceCounter(seed=4)
        with pytest.raises(NamingConflictError):
            builder.build("foo@bar.com", split(["-sname me"]), counter)
        assert counter.value == 4

    def test_both_naming_flags_conflict(self, builder):
        with pytest.raises(NamingConflictError):
            builder.build("foo", split(["-name a@b.c", "-sname a"]), SequenceCounter())

    def test_errors_share_base_class(self):
        assert issubclass(NamingConflictError, ConnectionArgsError)
        assert issubclass(TargetRequiredError, ConnectionArgsError)


class TestRebuild:
    def test_resolved_options_rebuild_identically(self, builder):
        """Building again from resolved options reproduces the argv."""
        counter = SequenceCounter(seed=20)
        resolved = builder.resolve_options("foo@bar.com", [], counter, pid=8)
        first = builder.with_suffix("foo@bar.com", resolved)
        again = builder.build("foo@bar.com", resolved, counter, pid=9)

        assert again.argv == first.argv
        assert [o.flag for o in resolved] == [LONG_NAME]
        assert SHORT_NAME not in [o.flag for o in resolved]
