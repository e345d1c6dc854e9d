import threading
import time
from datetime import timedelta

from conftest import age_file

from ssm_ssh_connect.lock import KeyPushLock, LockState


def test_acquire_and_release(tmp_path):
    path = tmp_path / "dev-web-1-ec2-user.lock"
    lock = KeyPushLock(path, auto_release=False)
    assert lock.state is LockState.UNLOCKED
    assert lock.try_acquire()
    assert lock.state is LockState.HELD
    assert lock.acquired_at is not None
    assert path.exists()
    lock.release()
    assert lock.state is LockState.UNLOCKED
    assert not path.exists()
    lock.release()  # idempotent


def test_second_acquirer_sees_held(tmp_path):
    path = tmp_path / "k.lock"
    first = KeyPushLock(path, auto_release=False)
    second = KeyPushLock(path, auto_release=False)
    assert first.try_acquire()
    assert not second.try_acquire()
    assert second.state is LockState.UNLOCKED
    first.release()
    assert second.try_acquire()
    second.release()


def test_concurrent_acquire_exactly_one_wins(tmp_path):
    path = tmp_path / "k.lock"
    n = 8
    barrier = threading.Barrier(n)
    results = []

    def attempt():
        lock = KeyPushLock(path, auto_release=False)
        barrier.wait()
        results.append(lock.try_acquire())

    threads = [threading.Thread(target=attempt) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count(True) == 1


def test_stale_token_is_reclaimed(tmp_path):
    path = tmp_path / "k.lock"
    path.touch()
    age_file(path, 70)
    lock = KeyPushLock(path, auto_release=False)
    assert lock.is_stale()
    assert lock.try_acquire()
    assert lock.token_age() < 5
    lock.release()


def test_fresh_token_is_respected(tmp_path):
    path = tmp_path / "k.lock"
    path.touch()
    age_file(path, 5)
    lock = KeyPushLock(path, auto_release=False)
    assert not lock.is_stale()
    assert not lock.try_acquire()
    assert path.exists()


def test_deferred_release_fires(tmp_path):
    path = tmp_path / "k.lock"
    lock = KeyPushLock(path, timeout=timedelta(milliseconds=50))
    assert lock.try_acquire()
    deadline = time.time() + 5
    while path.exists() and time.time() < deadline:
        time.sleep(0.01)
    assert not path.exists()
    assert lock.state is LockState.UNLOCKED


def test_late_release_keeps_other_holders_token(tmp_path):
    path = tmp_path / "k.lock"
    first = KeyPushLock(path, auto_release=False)
    assert first.try_acquire()
    first.release()
    second = KeyPushLock(path, auto_release=False)
    assert second.try_acquire()
    first.release()
    assert path.exists()
    second.release()


def test_context_manager(tmp_path):
    path = tmp_path / "k.lock"
    with KeyPushLock(path, auto_release=False) as acquired:
        assert acquired
        assert path.exists()
    assert not path.exists()


def test_release_after_reclaim_keeps_new_holders_token(tmp_path):
    path = tmp_path / "k.lock"
    first = KeyPushLock(path, auto_release=False)
    assert first.try_acquire()
    age_file(path, 70)  # e.g. laptop suspended while first still holds it
    second = KeyPushLock(path, auto_release=False)
    assert second.try_acquire()

    first.release()

    assert first.state is LockState.UNLOCKED
    assert second.state is LockState.HELD
    assert path.exists()
    assert second.owns_token()
    assert not first.owns_token()
    second.release()
    assert not path.exists()


def test_reclaim_race_has_single_winner(tmp_path, monkeypatch):
    path = tmp_path / "k.lock"
    path.touch()
    age_file(path, 70)
    a = KeyPushLock(path, auto_release=False)
    b = KeyPushLock(path, auto_release=False)
    real_is_stale = b.is_stale
    calls = []

    def is_stale_then_lose_race():
        stale = real_is_stale()
        if not calls:
            # a reclaims between b's staleness check and b's reclaim
            assert a.try_acquire()
        calls.append(stale)
        return stale

    monkeypatch.setattr(b, "is_stale", is_stale_then_lose_race)

    assert not b.try_acquire()
    assert a.state is LockState.HELD
    assert b.state is LockState.UNLOCKED
    assert a.owns_token()
    a.release()


def test_concurrent_reclaim_exactly_one_wins(tmp_path):
    path = tmp_path / "k.lock"
    path.touch()
    age_file(path, 70)
    n = 8
    barrier = threading.Barrier(n)
    locks = [KeyPushLock(path, auto_release=False) for _ in range(n)]
    results = []

    def attempt(lock):
        barrier.wait()
        results.append(lock.try_acquire())

    threads = [threading.Thread(target=attempt, args=(lock,)) for lock in locks]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count(True) == 1
    assert sum(lock.owns_token() for lock in locks) == 1
