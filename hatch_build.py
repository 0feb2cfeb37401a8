"""Compile the gRPC protobuf definitions into Python modules at build time."""

from importlib.resources import files
from pathlib import Path
from typing import Any

from grpc_tools import protoc
from hatchling.builders.hooks.plugin.interface import BuildHookInterface


SOURCE_ROOT = "src"
PROTO_FILES = ("fastcv_payments/proto/payment/v1/payment.proto",)


class ProtoBuildHook(BuildHookInterface):
    PLUGIN_NAME = "proto"

    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        source_root = Path(self.root) / SOURCE_ROOT
        well_known_types = files("grpc_tools") / "_proto"

        args = [
            "grpc_tools.protoc",
            f"--proto_path={source_root}",
            f"--proto_path={well_known_types}",
            f"--python_out={source_root}",
            f"--pyi_out={source_root}",
            f"--grpc_python_out={source_root}",
            *(str(source_root / proto) for proto in PROTO_FILES),
        ]
        if protoc.main(args) != 0:
            raise RuntimeError(f"protoc failed for {', '.join(PROTO_FILES)}")

        for proto in PROTO_FILES:
            stem = proto.removesuffix(".proto")
            build_data["artifacts"].extend(
                f"{SOURCE_ROOT}/{stem}{suffix}" for suffix in ("_pb2.py", "_pb2.pyi", "_pb2_grpc.py")
            )
