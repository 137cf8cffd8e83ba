import pytest

from qmstr.config import (
    ConfigError,
    MasterConfig,
    consume_file,
    read_config_from_bytes,
    read_config_from_files,
    serialize_config,
    validate_config,
)
from qmstr.nodes import PathSubstitution

HEADER = """
project:
  name: "The Test"
  metadata:
    Vendor: "Example Org"
    OcFossLiaison: "Jane Doe"
    OcComplianceContact: "[email]"
  server:
    rpcaddress: "{rpc}"
    dbaddress: "testhost:54321"
    dbworkers: 4
"""


def analyzer(name=None, exe=None, extra=""):
    lines = []
    first = True
    for key, value in (("analyzer", exe), ("name", name)):
        if value is None:
            continue
        prefix = "    - " if first else "      "
        lines.append(f'{prefix}{key}: "{value}"')
        first = False
    body = "\n".join(lines)
    return (
        body
        + """
      selector: sourcecode
      pathsub:
        - old: "/the/path"
          new: "/buildroot"
      config:
        workdir: "/buildroot"
"""
        + extra
    )


def reporter(name=None, exe=None):
    lines = []
    first = True
    for key, value in (("reporter", exe), ("name", name)):
        if value is None:
            continue
        prefix = "    - " if first else "      "
        lines.append(f'{prefix}{key}: "{value}"')
        first = False
    if first:
        lines.append("    - config:")
    else:
        lines.append("      config:")
    lines.append('        tester: "Example Org"')
    return "\n".join(lines) + "\n"


def document(analyzers, reporters, rpc=":12345"):
    return (
        HEADER.format(rpc=rpc)
        + "  analysis:\n"
        + "".join(analyzers)
        + "  reporting:\n"
        + "".join(reporters)
    )


SECOND_EXTRA = '        testfile: "/the/test"\n'

COMPLETE = document(
    [
        analyzer("The Testalyzer", "test-analyzer"),
        analyzer("The Testalyzer 2", "test-analyzer-2", SECOND_EXTRA),
    ],
    [reporter("The test reporter", "test-reporter")],
)


def test_complete_config():
    config = read_config_from_bytes(COMPLETE.encode())
    assert config.name == "The Test"
    assert config.server.rpc_address == ":12345"
    assert config.server.db_address == "testhost:54321"
    assert config.server.db_workers == 4
    assert [a.name for a in config.analysis] == ["The Testalyzer", "The Testalyzer 2"]
    assert config.analysis[1].config == {"workdir": "/buildroot", "testfile": "/the/test"}
    assert config.analysis[0].path_sub == [PathSubstitution(old="/the/path", new="/buildroot")]
    assert config.reporting[0].reporter == "test-reporter"
    assert config.meta_data["Vendor"] == "Example Org"


def test_missing_module_instance_name():
    text = document(
        [
            analyzer("The Testalyzer", "test-analyzer"),
            analyzer("The Testalyzer 2", "test-analyzer-2", SECOND_EXTRA),
        ],
        [reporter(None, "test-reporter")],
    )
    with pytest.raises(ConfigError) as info:
        read_config_from_bytes(text.encode())
    assert str(info.value) == "1. reporter misconfigured Name invalid"


def test_duplicate_module_instance_names():
    text = document(
        [
            analyzer("The Testalyzer", "test-analyzer"),
            analyzer("The Testalyzer", "test-analyzer-2", SECOND_EXTRA),
        ],
        [reporter("The reporter", "test-reporter")],
    )
    with pytest.raises(ConfigError) as info:
        read_config_from_bytes(text.encode())
    assert str(info.value) == "2. analyzer misconfigured duplicate value of The Testalyzer in Name"


def test_missing_analyzer_executable_name():
    text = document(
        [
            analyzer("The Testalyzer", None),
            analyzer("The Testalyzer 2", "test-analyzer-2", SECOND_EXTRA),
        ],
        [reporter("The reporter", "test-reporter")],
    )
    with pytest.raises(ConfigError) as info:
        read_config_from_bytes(text.encode())
    assert str(info.value) == "1. analyzer misconfigured Analyzer invalid"


def test_missing_reporter_executable_name():
    text = document(
        [
            analyzer("The Testalyzer", "test-analyzer"),
            analyzer("The Testalyzer 2", "test-analyzer", SECOND_EXTRA),
        ],
        [reporter(None, None)],
    )
    with pytest.raises(ConfigError) as info:
        read_config_from_bytes(text.encode())
    assert str(info.value) == "1. reporter misconfigured Name invalid"


def test_implicit_duplicate_posix_name():
    text = document(
        [
            analyzer("The Testalyzer", "test-analyzer"),
            analyzer("The_Testalyzer", "test-analyzer-2", SECOND_EXTRA),
        ],
        [reporter("The test reporter", "test-reporter")],
    )
    with pytest.raises(ConfigError) as info:
        read_config_from_bytes(text.encode())
    assert (
        str(info.value)
        == "2. analyzer misconfigured duplicate value of The_Testalyzer in PosixName"
    )


def test_rpc_server_address():
    text = document(
        [analyzer("The Testalyzer", "test-analyzer")],
        [reporter("The test reporter", "test-reporter")],
        rpc="12345",
    )
    with pytest.raises(ConfigError) as info:
        read_config_from_bytes(text.encode())
    assert str(info.value) == "Invalid RPC address"


def test_defaults_and_rpc_port():
    config = read_config_from_bytes(b"project:\n  name: minimal\n")
    assert config.server.rpc_address == ":50051"
    assert config.server.db_address == "localhost:9080"
    assert config.server.db_workers == 2
    assert config.rpc_port() == "50051"


def test_rpc_port_from_document():
    assert read_config_from_bytes(COMPLETE).rpc_port() == "12345"


def test_null_project_is_rejected():
    with pytest.raises(ConfigError) as info:
        read_config_from_bytes(b"project:\n")
    assert str(info.value) == "empty configuration -- check indentation"


def test_validate_none():
    with pytest.raises(ConfigError):
        validate_config(None)


def test_validation_does_not_store_posix_name():
    config = read_config_from_bytes(COMPLETE)
    assert all(a.posix_name == "" for a in config.analysis)


def test_wrong_integer_type():
    with pytest.raises(ConfigError):
        read_config_from_bytes(b"project:\n  server:\n    dbworkers: many\n")


def test_serialize_round_trip():
    config = read_config_from_bytes(COMPLETE)
    config.server.extra_env = {"KEY": "value"}
    again = read_config_from_bytes(serialize_config(config))
    assert again == config


def test_serialize_uses_image_key():
    config = MasterConfig()
    config.server.image_name = "custom/master"
    assert b"image: custom/master" in serialize_config(config)


def test_read_config_from_files_merges(tmp_path):
    first = tmp_path / "global.yaml"
    first.write_text(
        "project:\n  server:\n    dbworkers: 4\n    extraenv:\n      A: one\n"
    )
    second = tmp_path / "local.yaml"
    second.write_text("project:\n  name: local\n  server:\n    extraenv:\n      B: two\n")
    config = read_config_from_files(str(first), str(tmp_path / "missing.yaml"), str(second))
    assert config.name == "local"
    assert config.server.db_workers == 4
    assert config.server.extra_env == {"A": "one", "B": "two"}


def test_read_config_from_files_none_found(tmp_path):
    with pytest.raises(ConfigError) as info:
        read_config_from_files(str(tmp_path / "a.yaml"), str(tmp_path / "b.yaml"))
    assert str(info.value) == "No configuration file found"


def test_read_config_from_files_invalid(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text('project:\n  server:\n    rpcaddress: "nocolon"\n')
    with pytest.raises(ConfigError) as info:
        read_config_from_files(str(bad))
    assert str(info.value) == f"Failed to read config from {bad}: Invalid RPC address"


def test_consume_file(tmp_path):
    target = tmp_path / "data"
    target.write_bytes(b"abc\x00def")
    assert consume_file(str(target)) == b"abc\x00def"