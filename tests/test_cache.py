import json
from datetime import timedelta

from conftest import age_file

from ssm_ssh_connect.cache import IdentityCache
from ssm_ssh_connect.models import ConnectTarget, InstanceIdentity

TARGET = ConnectTarget("dev", "web-1", "ec2-user")
IDENT = InstanceIdentity("i-0abc1234567890", "us-east-1a")


def test_save_then_load(tmp_path):
    cache = IdentityCache(tmp_path)
    path = cache.save(TARGET, IDENT)
    assert path == tmp_path / "dev-web-1-ec2-user.json"
    assert json.loads(path.read_text()) == {"region": "us-east-1", "instance_id": "i-0abc1234567890", "instance_az": "us-east-1a"}
    assert cache.load(TARGET) == IDENT


def test_save_creates_directory(tmp_path):
    cache = IdentityCache(tmp_path / "nested" / "dir")
    cache.save(TARGET, IDENT)
    assert cache.load(TARGET) == IDENT


def test_missing_is_absent(tmp_path):
    assert IdentityCache(tmp_path).load(TARGET) is None


def test_one_hour_old_is_valid(tmp_path):
    cache = IdentityCache(tmp_path)
    path = cache.save(TARGET, IDENT)
    age_file(path, 3600)
    assert cache.load(TARGET) == IDENT


def test_expired_is_absent(tmp_path):
    cache = IdentityCache(tmp_path)
    path = cache.save(TARGET, IDENT)
    age_file(path, 24 * 3600 + 5)
    assert cache.load(TARGET) is None


def test_custom_ttl(tmp_path):
    cache = IdentityCache(tmp_path, ttl=timedelta(minutes=1))
    path = cache.save(TARGET, IDENT)
    age_file(path, 120)
    assert cache.load(TARGET) is None


def test_malformed_is_absent(tmp_path):
    cache = IdentityCache(tmp_path)
    for body in ("not json", "[]", '{"instance_id": "i-1"}', '{"instance_id": "i-1", "instance_az": ""}', '"x"'):
        cache.path_for(TARGET).write_text(body)
        assert cache.load(TARGET) is None, body


def test_keys_do_not_collide(tmp_path):
    cache = IdentityCache(tmp_path)
    cache.save(TARGET, IDENT)
    assert cache.load(ConnectTarget("dev", "web-1", "ubuntu")) is None
    assert cache.load(ConnectTarget("prod", "web-1", "ec2-user")) is None
