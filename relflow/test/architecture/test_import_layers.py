from __future__ import annotations

import pytest

from ._utils import iter_python_files, matches_prefix, parse_imports, relflow_root

# package -> modules it must never import
LAYERS: dict[str, tuple[str, ...]] = {
    "core": ("relflow.services", "relflow.cli", "relflow.git", "typer"),
    "platform": ("relflow.services", "relflow.cli", "typer"),
    "git": ("relflow.services", "relflow.cli", "typer"),
    "output": ("relflow.services", "relflow.cli", "typer"),
    "services": ("relflow.cli", "typer", "rich"),
}


@pytest.mark.parametrize("package", sorted(LAYERS))
def test_layer_imports(package: str) -> None:
    root = relflow_root()
    offenders: list[str] = []

    for file_path in iter_python_files(root / package):
        rel = file_path.relative_to(root)
        for item in parse_imports(file_path):
            if any(matches_prefix(item.module, banned) for banned in LAYERS[package]):
                offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, f"{package} dependency violations:\n" + "\n".join(offenders)
