import json

from docmerge.config import get_settings
from docmerge.reconcile.schema import export_json_schema

out = get_settings().project_root / "schema" / "reconcile_report.schema.json"
out.parent.mkdir(parents=True, exist_ok=True)
out.write_text(json.dumps(export_json_schema(), indent=2), encoding="utf-8")
print(f"Wrote {out}")
