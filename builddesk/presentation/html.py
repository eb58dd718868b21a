# builddesk/presentation/html.py
import os

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render(template_name: str, **context) -> str:
    '''渲染 presentation/templates 下的 HTML 片段，变量默认转义'''
    return _env.get_template(template_name).render(**context)


def trusted(html: str) -> Markup:
    '''已生成的 HTML 片段，嵌入其他模板时不再转义'''
    return Markup(html)
