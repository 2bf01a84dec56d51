"""HTML wrappers around rendered link-page documents."""

from flask import render_template_string

_BASE_STYLE = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        color: white;
        min-height: 100vh;
        padding: 40px 20px;
        display: flex;
        flex-direction: column;
        align-items: center;
    }
"""

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }} - {{ app_name }}</title>
    <style>
        {{ base_style|safe }}
        .header { text-align: center; margin-bottom: 40px; }
        .header h1 { font-size: 2.5rem; margin-bottom: 10px; text-shadow: 0 2px 10px rgba(0,0,0,0.2); }
        .badge { display: inline-block; background: rgba(255,255,255,0.2); padding: 5px 15px; border-radius: 20px; }
        .svg-container { max-width: 800px; width: 100%; background: white; border-radius: 20px; padding: 30px; }
        .svg-container svg { width: 100%; height: auto; }
        .footer { margin-top: 40px; text-align: center; color: rgba(255,255,255,0.7); font-size: 0.9rem; }
    </style>
</head>
<body>
    <div class="header">
        <h1>{{ title }}</h1>
        {% if authenticated %}
        <div class="badge">🔐 Authenticated</div>
        {% elif demo %}
        <div class="badge">👁️ Demo Mode</div>
        {% endif %}
    </div>
    <div class="svg-container">
        {{ svg|safe }}
    </div>
    <div class="footer">
        <p>Woven by <strong>{{ app_name }}</strong></p>
    </div>
</body>
</html>"""

_ERROR_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>{{ app_name }} Error</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        {{ base_style|safe }}
        body { justify-content: center; }
        .error { background: rgba(255,255,255,0.1); padding: 40px; border-radius: 20px; text-align: center; }
    </style>
</head>
<body>
    <div class="error">
        <h1>⚠️ Error</h1>
        <p>{{ message }}</p>
    </div>
</body>
</html>"""

_LANDING_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{{ app_name }}</title>
    <style>{{ base_style|safe }}</style>
</head>
<body>
    <h1>🔗 {{ app_name }}</h1>
    <p>Privacy-first link pages. POST your links to <code>/create</code> or open a page by emojicode.</p>
</body>
</html>"""


def render_page(title: str, svg: str, authenticated: bool = False, demo: bool = False, app_name: str = "Linkitylink") -> str:
    """Wrap a rendered SVG document in the viewing page."""
    return render_template_string(
        _PAGE_TEMPLATE,
        title=title,
        svg=svg,
        authenticated=authenticated,
        demo=demo,
        app_name=app_name,
        base_style=_BASE_STYLE,
    )


def render_error_page(message: str, app_name: str = "Linkitylink") -> str:
    return render_template_string(_ERROR_TEMPLATE, message=message, app_name=app_name, base_style=_BASE_STYLE)


def render_landing_page(app_name: str = "Linkitylink") -> str:
    return render_template_string(_LANDING_TEMPLATE, app_name=app_name, base_style=_BASE_STYLE)
