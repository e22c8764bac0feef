"""End-to-end check of the locking convention on the reference Foo fixture.

Expected diagnostics are written inline as `// want "regexp"` comments.
"""
import pytest

from lockcheck import check_sources
from lockcheck.expect import check_expectations, collect_expectations
from lockcheck.violations import ViolationKind


FIXTURE_PATH = "a/a.go"

FIXTURE = """\
package a

import "sync"

type Foo struct {
	i  int
	mu sync.Mutex
}

func (f *Foo) bar() {
	f.mu.Lock() // want "unprivileged method bar locks mutex"
}

func (f *Foo) Bar() {
	f.mu.Lock() // OK
}

func (f *Foo) managedBar() {
	f.mu.Lock() // OK
}

func (f *Foo) threadedBar() {
	f.mu.Lock() // OK
}

func (f *Foo) callBar() {
	f.mu.Lock() // OK
}

func (f *Foo) otherprefixBar() {
	f.mu.Lock() // want "unprivileged method otherprefixBar locks mutex"
}

func (f *Foo) nonlocking() {
	f.i++ // OK
}

func (f *Foo) callsUnprivileged() {
	f.bar() // OK
}

func (f *Foo) callsPrivileged() {
	f.managedBar() // want "unprivileged method callsPrivileged calls privileged method managedBar"
}

func (f *Foo) ExportedNonLocking() {
	f.i++ // want "privileged method ExportedNonLocking accesses i without holding mutex"
}

func (f *Foo) ExportedLocking() {
	f.mu.Lock()
	f.i++ // OK
	f.mu.Unlock()
}

func (f *Foo) ExportedDeferLocking() {
	f.mu.Lock()
	defer f.mu.Unlock()
	f.i++ // OK
}

func (f *Foo) ExportedUnlocking() {
	f.mu.Lock()
	f.mu.Unlock()
	f.i++ // want "privileged method ExportedUnlocking accesses i without holding mutex"
}

func (f *Foo) ExportedConditionalLocking() {
	if 1 < 2 {
		if 2 < 3 {
			if 4 < 3 {
				f.mu.Lock()
			}
		}
		if 5 < 6 {
			f.mu.Lock()
		} else {
			f.mu.Unlock()
		}
	}
	if 2 < 1 {
		f.i++ // want "privileged method ExportedConditionalLocking accesses i without holding mutex"
	}
}

func (f *Foo) ExportedLoopLocking() {
	f.mu.Lock()
	for i := 0; i < 10; i++ {
		f.mu.Unlock()
		f.mu.Lock()
	}
	f.i++ // OK
}

func (f *Foo) OnePathLocks() {
	if true {
		f.mu.Lock()
	}
	f.i++ // want "privileged method OnePathLocks accesses i without holding mutex"
}


func (f *Foo) AllPathsLock() {
	if true {
		f.mu.Lock()
	} else {
		f.mu.Lock()
	}
	f.i++ // OK
}

func (f *Foo) CallsPrivilegedWithLock() {
	f.mu.Lock()
	f.Bar() // want "privileged method CallsPrivilegedWithLock calls privileged method Bar while holding mutex"
}

func (f *Foo) CallsUnprivilegedWithoutLock() {
	f.bar() // want "privileged method CallsUnprivilegedWithoutLock calls unprivileged method bar without holding mutex"
}


func (f *Foo) CallLiteral() {
	func() {
		f.mu.Lock()
		defer f.mu.Unlock()
		f.i++ // OK
	}()

	f.mu.Lock()
	defer f.mu.Unlock()
	func() {
		f.i++ // OK
	}()
}

func (f *Foo) CallAssignedLiteral() {
	fn := func() {
		f.mu.Lock()
		if true {
			f.i++ // OK
		}
	}
	fn()
}


type FooNoMutex struct {
	i int
}

func (f *FooNoMutex) Bar() {
	f.i++ // OK
}

func (f *FooNoMutex) baz() {
	f.Bar() // OK
}


type FooUnrelatedExportedMethod struct {
	other Foo
	mu    sync.Mutex
}

func (f *FooUnrelatedExportedMethod) bar() {
	f.other.Bar() // OK
}

"""


@pytest.fixture(scope="module")
def violations():
    return check_sources({FIXTURE_PATH: FIXTURE})


class TestFooFixture:
    """The fixture's `// want` comments are exactly the reported diagnostics."""

    def test_expectations_match(self, violations):
        problems = check_expectations(FIXTURE, violations, filename=FIXTURE_PATH)
        assert problems == []

    def test_every_expectation_is_reported_once(self, violations):
        expected = sum(len(p) for p in collect_expectations(FIXTURE).values())
        assert expected == 9
        assert len(violations) == expected

    def test_categories(self, violations):
        kinds = {v.method: v.kind for v in violations}
        assert kinds["bar"] == ViolationKind.SELF_LOCKING
        assert kinds["otherprefixBar"] == ViolationKind.SELF_LOCKING
        assert kinds["callsPrivileged"] == ViolationKind.UNPRIVILEGED_CALLS_PRIVILEGED
        assert kinds["ExportedNonLocking"] == ViolationKind.UNGUARDED_ACCESS
        assert kinds["ExportedUnlocking"] == ViolationKind.UNGUARDED_ACCESS
        assert kinds["ExportedConditionalLocking"] == ViolationKind.UNGUARDED_ACCESS
        assert kinds["OnePathLocks"] == ViolationKind.UNGUARDED_ACCESS
        assert kinds["CallsPrivilegedWithLock"] == ViolationKind.PRIVILEGED_CALL_WHILE_LOCKED
        assert kinds["CallsUnprivilegedWithoutLock"] == ViolationKind.UNPRIVILEGED_CALL_WITHOUT_LOCK

    def test_clean_methods_report_nothing(self, violations):
        reported = {v.method for v in violations}
        for method in (
            "Bar",
            "managedBar",
            "threadedBar",
            "callBar",
            "nonlocking",
            "callsUnprivileged",
            "ExportedLocking",
            "ExportedDeferLocking",
            "ExportedLoopLocking",
            "AllPathsLock",
            "CallLiteral",
            "CallAssignedLiteral",
        ):
            assert method not in reported

    def test_types_without_mutex_are_ignored(self, violations):
        # FooNoMutex.Bar accesses i unlocked; FooUnrelatedExportedMethod.bar calls f.other.Bar()
        assert all(v.location.file == FIXTURE_PATH for v in violations)
        lines = FIXTURE.splitlines()
        for v in violations:
            assert "FooNoMutex" not in lines[v.location.line - 1]
            assert "f.other" not in lines[v.location.line - 1]

    def test_presentation_order(self, violations):
        keys = [v.sort_key() for v in violations]
        assert keys == sorted(keys)

    def test_analysis_is_deterministic(self, violations):
        again = check_sources({FIXTURE_PATH: FIXTURE})
        assert [str(v) for v in again] == [str(v) for v in violations]
