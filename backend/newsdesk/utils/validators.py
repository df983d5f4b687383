"""输入验证与文本处理工具"""
import html
import re
import unicodedata


def validate_email(email: str) -> bool:
    """验证邮箱格式"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def validate_url(url: str) -> bool:
    """验证URL格式"""
    pattern = r'^https?://[^\s<>"{}|\\^`\[\]]+$'
    return bool(re.match(pattern, url))


def slugify(text: str, max_length: int = 180) -> str:
    """
    生成URL安全的slug

    拉丁字符先去掉重音再小写；无法转写为ASCII的文字（如阿拉伯文）保留原字符。
    """
    value = str(text or "").strip()
    if not value:
        return ""
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    base = ascii_value if re.search(r"[A-Za-z0-9]", ascii_value) else value
    base = base.lower().replace("@", " at ").replace("&", " and ")
    base = re.sub(r"[^\w\s-]", "", base, flags=re.UNICODE)
    base = re.sub(r"[\s_-]+", "-", base).strip("-")
    return base[:max_length].strip("-")


def strip_tags(text: str | None) -> str:
    """移除HTML标签并折叠空白"""
    if not text:
        return ""
    clean = re.sub(r"<(script|style)[^>]*>.*?</\1>", " ", str(text), flags=re.IGNORECASE | re.DOTALL)
    clean = re.sub(r"<[^>]+>", " ", clean)
    clean = html.unescape(clean)
    return " ".join(clean.split())


def limit_text(text: str, limit: int = 200, end: str = "...") -> str:
    """截断文本，超出部分用 end 结尾"""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + end


def make_excerpt(content: str | None, limit: int = 200) -> str:
    """从正文（可能含HTML）生成摘要"""
    return limit_text(strip_tags(content), limit)


def split_keywords(value: object) -> list[str]:
    """关键词：逗号分隔字符串或列表，统一为去重后的列表"""
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.replace("，", ",").split(",")
    elif isinstance(value, (list, tuple)):
        raw = [str(v) for v in value]
    else:
        raw = [str(value)]
    out: list[str] = []
    for item in raw:
        s = item.strip()
        if s and s not in out:
            out.append(s)
    return out
