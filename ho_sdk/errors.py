"""
错误类型模块

客户端所有失败都以 ApiClientError 抛出, 通过 kind 字段区分类别。
类别是封闭集合, 调用方可以对 kind 做穷举匹配:

    try:
        text = await client.send("GET", "/v1/ping")
    except ApiClientError as e:
        match e.kind:
            case ApiClientErrorKind.TRANSPORT: ...
            case ApiClientErrorKind.DECRYPTION: ...
"""

from enum import Enum
from typing import Optional


class ApiClientErrorKind(str, Enum):
    """错误类别"""

    # 构造时密钥 / IV 长度与 AES-256-CBC 不匹配
    INVALID_CONFIG = "invalid_config"
    # 网络失败、超时、非 200 状态码
    TRANSPORT = "transport"
    # 请求体序列化或响应信封反序列化失败
    SERIALIZATION = "serialization"
    # 响应 data 字段不是合法十六进制
    DECODE = "decode"
    # 分组长度或 PKCS7 填充错误
    DECRYPTION = "decryption"
    # 解密结果不是合法 UTF-8
    ENCODING = "encoding"


class ApiClientError(Exception):
    """
    客户端错误

    Attributes:
        kind: 错误类别
        message: 错误描述
        status_code: HTTP 状态码 (仅 TRANSPORT 且服务端有响应时)
    """

    def __init__(
        self,
        kind: ApiClientErrorKind,
        message: str,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.kind.value}] HTTP {self.status_code}: {self.message}"
        return f"[{self.kind.value}] {self.message}"

    def __repr__(self) -> str:
        return f"ApiClientError(kind={self.kind!r}, message={self.message!r}, status_code={self.status_code!r})"
