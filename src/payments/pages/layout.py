"""Shared HTML shell for the redirect pages.

The browser arrives here as the response to the gateway's form POST, so
the page must render on its own, then move on to the storefront after a
short pause. A meta refresh covers browsers without JavaScript.
"""

import html
import json
from urllib.parse import urlencode

REDIRECT_DELAY_MS = 2000

_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta http-equiv="refresh" content="{delay_seconds};url={attr_url}">
    <title>{title}</title>
    <style>
        body {{
            font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
            min-height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
            margin: 0;
            background: #f3f4f6;
        }}
        .container {{
            background: white;
            padding: 40px;
            border-radius: 12px;
            box-shadow: 0 10px 40px rgba(0,0,0,0.2);
            text-align: center;
            max-width: 400px;
        }}
        h2 {{ color: {accent}; margin-bottom: 10px; }}
    </style>
</head>
<body>
    <div class="container">
        <h2>{heading}</h2>
        <p>{message}</p>
    </div>
    <script>
        setTimeout(function() {{
            window.location.href = {js_url};
        }}, {delay_ms});
    </script>
</body>
</html>
"""


def redirect_url(site_url: str, path: str, params: dict) -> str:
    query = urlencode({key: value for key, value in params.items() if value not in (None, "")})
    url = f"{site_url.rstrip('/')}{path}"
    return f"{url}?{query}" if query else url


def render_redirect(content: dict, site_url: str) -> str:
    url = redirect_url(site_url, content["path"], content["params"])
    return _TEMPLATE.format(
        title=html.escape(content["title"]),
        heading=html.escape(content["heading"]),
        message=html.escape(content["message"]),
        accent=content["accent"],
        attr_url=html.escape(url, quote=True),
        # json.dumps yields a quoted JS string; "<" is already percent-encoded in the query
        js_url=json.dumps(url),
        delay_ms=REDIRECT_DELAY_MS,
        delay_seconds=REDIRECT_DELAY_MS // 1000,
    )
