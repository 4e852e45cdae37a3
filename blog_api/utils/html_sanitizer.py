"""
评论内容处理：Markdown 渲染 + HTML 白名单清理
"""
import re
from html import escape
from html.parser import HTMLParser
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import markdown

ALLOWED_TAGS = {
    "a", "abbr", "b", "blockquote", "br", "code", "del", "em",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i", "img", "li",
    "ol", "p", "pre", "s", "span", "strong", "sub", "sup",
    "table", "tbody", "td", "th", "thead", "tr", "ul"
}

ALLOWED_ATTRIBUTES = {
    "a": {"href", "title"},
    "abbr": {"title"},
    "code": {"class"},
    "img": {"src", "alt", "title"},
    "span": {"class"},
    "td": {"align"},
    "th": {"align"},
}

URL_ATTRIBUTES = {"href", "src"}
ALLOWED_SCHEMES = {"", "http", "https", "mailto"}

VOID_TAGS = {"br", "hr", "img"}

# 连同内容一起丢弃的标签
DROP_CONTENT_TAGS = {"script", "style", "iframe", "object", "embed", "template", "noscript"}


def _is_safe_url(value: str) -> bool:
    # 去掉空白和控制字符，防止 "java\tscript:" 之类的绕过
    cleaned = re.sub(r"[\x00-\x20]+", "", value)
    try:
        scheme = urlparse(cleaned).scheme.lower()
    except ValueError:
        return False
    return scheme in ALLOWED_SCHEMES


class HTMLSanitizer(HTMLParser):
    """HTML白名单清理器（不在白名单的标签去掉标签保留文本）"""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: List[str] = []
        self.drop_depth = 0

    def _clean_attrs(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> str:
        allowed = ALLOWED_ATTRIBUTES.get(tag, set())
        cleaned = []
        for name, value in attrs:
            name = name.lower()
            if name not in allowed or value is None:
                continue
            if name in URL_ATTRIBUTES and not _is_safe_url(value):
                continue
            cleaned.append(f' {name}="{escape(value, quote=True)}"')
        if tag == "a":
            cleaned.append(' rel="nofollow noopener noreferrer"')
        return "".join(cleaned)

    def handle_starttag(self, tag: str, attrs: list):
        """处理开始标签"""
        if tag in DROP_CONTENT_TAGS:
            self.drop_depth += 1
            return
        if self.drop_depth or tag not in ALLOWED_TAGS:
            return
        self.parts.append(f"<{tag}{self._clean_attrs(tag, attrs)}>")

    def handle_startendtag(self, tag: str, attrs: list):
        """处理自闭合标签"""
        if tag in DROP_CONTENT_TAGS:
            return
        self.handle_starttag(tag, attrs)
        if tag not in VOID_TAGS:
            self.handle_endtag(tag)

    def handle_endtag(self, tag: str):
        """处理结束标签"""
        if tag in DROP_CONTENT_TAGS:
            self.drop_depth = max(0, self.drop_depth - 1)
            return
        if self.drop_depth or tag not in ALLOWED_TAGS or tag in VOID_TAGS:
            return
        self.parts.append(f"</{tag}>")

    def handle_data(self, data: str):
        """处理文本数据"""
        if not self.drop_depth:
            self.parts.append(escape(data, quote=False))

    def get_html(self) -> str:
        return "".join(self.parts)


def sanitize_html(html_content: str) -> str:
    """清理HTML，只保留白名单内的标签和属性"""
    if not html_content:
        return ""
    sanitizer = HTMLSanitizer()
    sanitizer.feed(html_content)
    sanitizer.close()
    return sanitizer.get_html()


def render_comment(content: str) -> str:
    """将 Markdown 评论渲染为安全的 HTML"""
    raw_html = markdown.markdown(content or "", extensions=["fenced_code", "tables"])
    return sanitize_html(raw_html)
