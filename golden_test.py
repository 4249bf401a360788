import contextlib
import io
import logging
import os
import re
import tempfile

import pytest

import machine
import translator


@pytest.mark.golden_test("golden/*.yml")
def test_translator_and_machine(golden, caplog):
    caplog.set_level(logging.INFO)

    with tempfile.TemporaryDirectory() as tmpdirname:
        source_path = os.path.join(tmpdirname, golden["in_name"] + ".vm")
        target_path = os.path.join(tmpdirname, golden["in_name"] + ".asm")

        with open(source_path, "w", encoding="utf-8") as f:
            f.write(golden["in_source"])

        with contextlib.redirect_stdout(io.StringIO()) as stdout_io:
            translator.main(source_path)
            print("============================================================")

            with open(target_path, "r", encoding="utf-8", newline="") as f:
                code = f.read()

            datapath, _ = machine.simulation(
                code,
                limit=golden.get("in_limit", machine.DEFAULT_LIMIT),
            )
            print(f"Stack: {datapath.stack()}")

        watched = {
            addr: machine.to_signed(datapath.ram[addr])
            for addr in golden.get("in_watch", [])
        }

        stdout_normalized = re.sub(
            r"Successfully translated .*",
            "Successfully translated <source_path> to <target_path>",
            stdout_io.getvalue(),
        )

        assert code == golden.out["out_code"]
        assert stdout_normalized == golden.out["out_stdout"]
        assert watched == golden.out["out_ram"]
        assert "\n".join(caplog.messages) == golden.out["out_log"]
