"""ビルド済みドキュメントを HTML ページへ変換するテンプレート群。"""

from __future__ import annotations

from typing import Any, Mapping

from jinja2 import DictLoader, Environment, select_autoescape

_DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html lang="{{ doc.locale }}">
<head>
<meta charset="utf-8">
<title>{{ doc.pageTitle or doc.title }}</title>
<link rel="canonical" href="{{ url }}">
{% if doc.noIndexing %}<meta name="robots" content="noindex, nofollow">
{% endif %}{% if doc.summary %}<meta name="description" content="{{ doc.summary }}">
{% endif %}{% for translation in doc.otherTranslations or [] %}<link rel="alternate" hreflang="{{ translation.locale }}" href="/{{ translation.locale }}/docs/{{ doc.slug }}">
{% endfor %}</head>
<body>
{% if doc.parents %}<nav class="breadcrumbs">
{% for parent in doc.parents %}<a href="{{ parent.uri }}">{{ parent.title }}</a>
{% endfor %}</nav>
{% endif %}{% if doc.sidebarHTML %}<aside class="sidebar">{{ doc.sidebarHTML | safe }}</aside>
{% endif %}<main>
<h1>{{ doc.title }}</h1>
{% if doc.toc %}<nav class="toc"><ul>
{% for item in doc.toc %}<li><a href="#{{ item.id }}">{{ item.text }}</a></li>
{% endfor %}</ul></nav>
{% endif %}{% for section in doc.body %}<section{% if section.value.id %} aria-labelledby="{{ section.value.id }}"{% endif %}>
{% if section.value.title %}<h2 id="{{ section.value.id }}">{{ section.value.title }}</h2>
{% endif %}{{ section.value.content | safe }}
</section>
{% endfor %}</main>
{% if doc.source and doc.source.github_url %}<footer><a href="{{ doc.source.github_url }}">Source</a></footer>
{% endif %}</body>
</html>
"""

_LIVE_SAMPLE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
{% if css %}<style>
{{ css | safe }}
</style>
{% endif %}</head>
<body>
{{ html | safe }}
{% if js %}<script>
{{ js | safe }}
</script>
{% endif %}</body>
</html>
"""

_environment = Environment(
    loader=DictLoader({"document.html": _DOCUMENT_TEMPLATE, "live_sample.html": _LIVE_SAMPLE_TEMPLATE}),
    autoescape=select_autoescape(default=True, default_for_string=True),
    keep_trailing_newline=True,
)


def render_html(url: str, payload: Mapping[str, Any]) -> str:
    """ビルド済みドキュメントの辞書表現から完全な HTML を生成します。

    ``payload`` は ``BuiltDocument.to_dict()`` の出力です。呼び出し側は
    JSON スナップショットを取得した後にコピーを渡してください。
    """

    return _environment.get_template("document.html").render(url=url, doc=payload)


def render_live_sample(title: str, html: str = "", css: str = "", js: str = "") -> str:
    return _environment.get_template("live_sample.html").render(title=title, html=html, css=css, js=js)
