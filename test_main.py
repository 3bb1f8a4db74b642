import json

import main


def write_config(tmp_path, make_config_fields):
    path = tmp_path / "client.json"
    path.write_text(json.dumps(make_config_fields), encoding="utf-8")
    return str(path)


def test_parse_args_defaults():
    args = main.parse_args(["--config", "c.json"])
    assert args.service == "system"
    assert args.method == "rpcVersion"
    assert args.args == "[]"
    assert args.request_id is None
    assert not args.verbose


def test_bad_args_exit_code(tmp_path):
    assert main.main(["--config", "c.json", "--args", "{oops"]) == 2
    assert main.main(["--config", "c.json", "--args", '{"a": 1}']) == 2


def test_missing_config_exit_code(tmp_path):
    assert main.main(["--config", str(tmp_path / "absent.json")]) == 1


def test_invalid_config_exit_code(tmp_path):
    path = write_config(tmp_path, {"host": "localhost"})
    assert main.main(["--config", path]) == 1
