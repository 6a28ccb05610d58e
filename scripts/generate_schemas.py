"""Generate JSON schemas for the manifest and config models into schemas/."""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gtsgen.config import GenerateConfig
from gtsgen.kernel.declaration import SchemaDeclaration


def generate_schemas():
    """Write one schema file per user-facing input model."""
    schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    targets = [
        (SchemaDeclaration, "declaration.schema.json"),
        (GenerateConfig, "generate_config.schema.json"),
    ]
    for model, filename in targets:
        path = schemas_dir / filename
        with open(path, "w", encoding="utf-8") as f:
            json.dump(model.model_json_schema(), f, indent=2, ensure_ascii=False)
            f.write("\n")
        print(f"Generated: {path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
