from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, select_autoescape

from .serialization import encode_model
from .types_model import EvaluatedModel


env = Environment(autoescape=select_autoescape(["html", "xml"]))
# Keep the member order of the serialized model in the embedded payload.
env.policies["json.dumps_kwargs"] = {"sort_keys": False}

REPORT_DATA_ELEMENT_ID = "ort-report-data"

_WEB_APP_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>{{ title }}</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 2rem; }
    h1 { color: #1f2937; }
    table { border-collapse: collapse; margin-bottom: 1.5rem; }
    th, td { border: 1px solid #d1d5db; padding: 0.5rem; }
    th { background: #f3f4f6; text-align: left; }
  </style>
</head>
<body>
  <h1>{{ title }}</h1>
  <noscript>
    <table>
      <thead><tr><th>Projects</th><th>Packages</th><th>Issues</th><th>Rule violations</th><th>Licenses</th></tr></thead>
      <tbody>
        <tr>
          <td>{{ projects }}</td>
          <td>{{ packages }}</td>
          <td>{{ issues }}</td>
          <td>{{ violations }}</td>
          <td>{{ licenses }}</td>
        </tr>
      </tbody>
    </table>
  </noscript>
  <div id="root"></div>
  <script id="{{ data_element_id }}" type="application/json">{{ report_data|tojson }}</script>
</body>
</html>
"""


def render_json(model: EvaluatedModel) -> str:
    return model.to_json()


def render_web_app(model: EvaluatedModel, title: str = "Evaluated Model Report") -> str:
    """Embed the serialized model in a self-contained page for the browser report app."""

    template = env.from_string(_WEB_APP_TEMPLATE)
    return template.render(
        title=title,
        projects=sum(1 for pkg in model.packages if pkg.is_project),
        packages=sum(1 for pkg in model.packages if not pkg.is_project),
        issues=len(model.issues),
        violations=len(model.violations),
        licenses=len(model.licenses),
        data_element_id=REPORT_DATA_ELEMENT_ID,
        report_data=encode_model(model),
    )


def render_report(model: EvaluatedModel, fmt: str) -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return render_json(model)
    if fmt in {"html", "web-app"}:
        return render_web_app(model)
    raise ValueError(f"Unknown report format: {fmt}")


def write_report(model: EvaluatedModel, fmt: str, destination: Path | None) -> str:
    rendered = render_report(model, fmt)
    if destination:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(rendered, encoding="utf-8")
    return rendered
