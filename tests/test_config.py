import pytest

from agora.config import Config
from agora.errors import ConfigDeserializeError, FilesystemIoError, InternalError
from agora.millisatoshi import Millisatoshi


def test_default_config():
    assert Config() == Config(paid=None, base_price=None)
    assert Config().is_paid() is False


def test_loads_the_default_config_when_no_files_given(tmp_path):
    assert Config.for_dir(tmp_path, tmp_path) == Config()


def test_loads_config_from_files(tmp_path):
    (tmp_path / ".agora.yaml").write_text("paid: true")
    config = Config.for_dir(tmp_path, tmp_path)
    assert config == Config(paid=True, base_price=None)
    assert config.is_paid() is True


def test_directory_does_not_exist(tmp_path):
    with pytest.raises(FilesystemIoError) as info:
        Config.for_dir(tmp_path, tmp_path / "does-not-exist")
    assert info.value.path == tmp_path / "does-not-exist"
    assert isinstance(info.value.source, FileNotFoundError)


def test_io_error_when_reading_config_file(tmp_path):
    (tmp_path / ".agora.yaml").mkdir()
    with pytest.raises(FilesystemIoError) as info:
        Config.for_dir(tmp_path, tmp_path)
    assert info.value.path == tmp_path / ".agora.yaml"


def test_invalid_config(tmp_path):
    (tmp_path / ".agora.yaml").write_text("{{{")
    with pytest.raises(ConfigDeserializeError) as info:
        Config.for_dir(tmp_path, tmp_path)
    assert info.value.path == tmp_path / ".agora.yaml"


def test_unknown_fields(tmp_path):
    (tmp_path / ".agora.yaml").write_text("unknown_field: foo")
    with pytest.raises(ConfigDeserializeError) as info:
        Config.for_dir(tmp_path, tmp_path)
    assert info.value.path == tmp_path / ".agora.yaml"
    assert "unknown field `unknown_field`" in str(info.value.source)


def test_paid_is_optional(tmp_path):
    (tmp_path / ".agora.yaml").write_text("{}")
    assert Config.for_dir(tmp_path, tmp_path) == Config()


def test_parses_base_price_in_satoshi(tmp_path):
    (tmp_path / ".agora.yaml").write_text("paid: true\nbase-price: 3 sat\n")
    config = Config.for_dir(tmp_path, tmp_path)
    assert config.base_price == Millisatoshi(3000)


def test_invalid_base_price(tmp_path):
    (tmp_path / ".agora.yaml").write_text("base-price: 3 msat")
    with pytest.raises(ConfigDeserializeError) as info:
        Config.for_dir(tmp_path, tmp_path)
    assert "invalid value" in str(info.value)


def test_inherits_config(tmp_path):
    (tmp_path / ".agora.yaml").write_text("{paid: true, base-price: 42 sat}")
    (tmp_path / "dir").mkdir()
    config = Config.for_dir(tmp_path, tmp_path / "dir")
    assert config == Config(paid=True, base_price=Millisatoshi(42_000))


def test_override_paid(tmp_path):
    (tmp_path / ".agora.yaml").write_text("{paid: true, base-price: 42 sat}")
    (tmp_path / "dir").mkdir()
    (tmp_path / "dir" / ".agora.yaml").write_text("paid: false")
    config = Config.for_dir(tmp_path, tmp_path / "dir")
    assert config == Config(paid=False, base_price=Millisatoshi(42_000))


def test_override_base_price(tmp_path):
    (tmp_path / ".agora.yaml").write_text("{paid: true, base-price: 42 sat}")
    (tmp_path / "dir").mkdir()
    (tmp_path / "dir" / ".agora.yaml").write_text("base-price: 23 sat")
    config = Config.for_dir(tmp_path, tmp_path / "dir")
    assert config == Config(paid=True, base_price=Millisatoshi(23_000))


def test_does_not_read_configs_in_subdirectories(tmp_path):
    (tmp_path / ".agora.yaml").write_text("{paid: true, base-price: 42 sat}")
    (tmp_path / "dir").mkdir()
    (tmp_path / "dir" / ".agora.yaml").write_text("base-price: 23 sat")
    config = Config.for_dir(tmp_path, tmp_path)
    assert config == Config(paid=True, base_price=Millisatoshi(42_000))


def test_does_not_read_configs_in_sibling_directories(tmp_path):
    (tmp_path / "foo").mkdir()
    (tmp_path / "foo" / ".agora.yaml").write_text("{paid: true, base-price: 42 sat}")
    (tmp_path / "bar").mkdir()
    (tmp_path / "bar" / ".agora.yaml").write_text("{paid: true, base-price: 23 sat}")
    config = Config.for_dir(tmp_path, tmp_path / "foo")
    assert config == Config(paid=True, base_price=Millisatoshi(42_000))


def test_does_not_read_configs_from_outside_the_root(tmp_path):
    (tmp_path / ".agora.yaml").write_text("{paid: true, base-price: 42 sat}")
    (tmp_path / "root" / "dir").mkdir(parents=True)
    root = tmp_path / "root"
    assert Config.for_dir(root, root) == Config(paid=None, base_price=None)
    assert Config.for_dir(root, root / "dir") == Config(paid=None, base_price=None)


def test_path_outside_base_directory_is_internal_error(tmp_path):
    (tmp_path / "base").mkdir()
    (tmp_path / "other").mkdir()
    with pytest.raises(InternalError):
        Config.for_dir(tmp_path / "base", tmp_path / "other")