"""
签名生成模块

实现 HO-SIGNATURE 签名算法,用于生成 API 请求的签名头。

签名算法:
HO-SIGNATURE = SHA1(app_id + nonce + timestamp + uri + body + app_secret)

其中:
- nonce: 每次请求随机生成的 UUID v4
- timestamp: 东八区 (Asia/Shanghai) 毫秒时间戳
- uri: 请求路径 (不含 base_url 与 content 前缀)
- body: 请求体的规范 JSON 字符串, 无请求体时为空字符串
- 各字段直接拼接, 无分隔符; 顺序不可改变
"""

import hashlib
import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ApiClientError, ApiClientErrorKind


# 固定的 SDK 标识
USER_AGENT = "H-RUST-SDK-1.0.0"

# 请求头名称
HEADER_APP_ID = "HO-APP-ID"
HEADER_NONCE = "HO-NONCE"
HEADER_TIMESTAMP = "HO-TIMESTAMP"
HEADER_SIGNATURE = "HO-SIGNATURE"

# 中国标准时间, 无夏令时
SHANGHAI_TZ = timezone(timedelta(hours=8), name="Asia/Shanghai")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def generate_nonce() -> str:
    """生成随机 nonce (UUID v4 字符串)"""
    return str(uuid.uuid4())


def get_shanghai_timestamp(now: Optional[datetime] = None) -> int:
    """
    获取东八区毫秒时间戳

    服务端按东八区校验时间戳, 这里先把当前时间转换到 Asia/Shanghai
    再取毫秒值。

    Args:
        now: 可选的时间点 (必须带时区), 默认使用当前 UTC 时间

    Returns:
        毫秒时间戳
    """
    if now is None:
        now = datetime.now(timezone.utc)
    local = now.astimezone(SHANGHAI_TZ)
    return (local - EPOCH) // timedelta(milliseconds=1)


def canonicalize_body(body: Any) -> str:
    """
    生成请求体的规范 JSON 字符串

    紧凑格式、键按字母排序、不转义 Unicode。
    同一个字符串既参与签名, 也作为请求体 data 字段的值发送。

    Args:
        body: 请求体 (任意可 JSON 序列化的值), None 表示无请求体

    Returns:
        规范 JSON 字符串, 无请求体时返回空字符串

    Raises:
        ApiClientError: SERIALIZATION, 请求体无法序列化 (包括 NaN/Infinity 与孤立代理字符)
    """
    if body is None:
        return ""
    try:
        body_string = json.dumps(
            body,
            separators=(',', ':'),
            ensure_ascii=False,
            sort_keys=True,
            allow_nan=False
        )
        # 孤立代理字符无法编码为 UTF-8
        body_string.encode("utf-8")
        return body_string
    except (TypeError, ValueError) as e:
        raise ApiClientError(
            ApiClientErrorKind.SERIALIZATION,
            f"Failed to serialize request body: {e}"
        ) from e


def build_sign_string(
    app_id: str,
    nonce: str,
    timestamp: int,
    uri: str,
    body_string: str,
    app_secret: str
) -> str:
    """按固定顺序拼接签名原文"""
    return f"{app_id}{nonce}{timestamp}{uri}{body_string}{app_secret}"


def generate_signature(
    app_id: str,
    nonce: str,
    timestamp: int,
    uri: str,
    body_string: str,
    app_secret: str
) -> str:
    """
    生成请求签名

    Args:
        app_id: 应用 ID
        nonce: 随机串
        timestamp: 毫秒时间戳
        uri: 请求路径
        body_string: 规范请求体字符串
        app_secret: 应用密钥

    Returns:
        40 位小写十六进制 SHA-1 签名

    Raises:
        ApiClientError: SERIALIZATION, 字段包含无法编码为 UTF-8 的字符

    Example:
        >>> sig = generate_signature("id1", "n", 1, "/v1/ping", "", "s")
        >>> len(sig)
        40
    """
    message = build_sign_string(app_id, nonce, timestamp, uri, body_string, app_secret)
    try:
        encoded = message.encode('utf-8')
    except UnicodeEncodeError as e:
        raise ApiClientError(
            ApiClientErrorKind.SERIALIZATION,
            f"Sign string is not valid UTF-8: {e}"
        ) from e
    return hashlib.sha1(encoded).hexdigest()


class SignedHeaders(BaseModel):
    """一次请求的签名结果"""
    model_config = ConfigDict(frozen=True)

    app_id: str = Field(..., description="应用 ID")
    nonce: str = Field(..., description="随机串")
    timestamp: int = Field(..., description="东八区毫秒时间戳")
    signature: str = Field(..., description="SHA-1 签名 (40位十六进制)")
    body_string: str = Field("", description="参与签名的规范请求体")

    def to_headers(self) -> Dict[str, str]:
        """转换为 HTTP 请求头"""
        return {
            "User-Agent": USER_AGENT,
            HEADER_APP_ID: self.app_id,
            HEADER_NONCE: self.nonce,
            HEADER_TIMESTAMP: str(self.timestamp),
            HEADER_SIGNATURE: self.signature,
        }


class SignatureGenerator:
    """
    签名生成器类

    绑定 app_id 与 app_secret, 为每次请求生成 nonce、时间戳和签名。

    Example:
        >>> generator = SignatureGenerator("id1", "secret")
        >>> signed = generator.sign("/v1/ping", {"key": "value"})
        >>> headers = signed.to_headers()
    """

    def __init__(self, app_id: str, app_secret: str):
        self.app_id = app_id
        self._app_secret = app_secret

    def sign(
        self,
        uri: str,
        body: Any = None,
        nonce: Optional[str] = None,
        timestamp: Optional[int] = None
    ) -> SignedHeaders:
        """
        为一次请求生成签名

        Args:
            uri: 请求路径
            body: 请求体, None 表示无请求体
            nonce: 可选的 nonce (默认随机生成)
            timestamp: 可选的时间戳 (默认使用当前东八区时间)

        Returns:
            SignedHeaders 实例
        """
        nonce = nonce or generate_nonce()
        if timestamp is None:
            timestamp = get_shanghai_timestamp()
        body_string = canonicalize_body(body)

        signature = generate_signature(
            self.app_id, nonce, timestamp, uri, body_string, self._app_secret
        )

        return SignedHeaders(
            app_id=self.app_id,
            nonce=nonce,
            timestamp=timestamp,
            signature=signature,
            body_string=body_string
        )
