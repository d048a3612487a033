"""
HO 签名加密 API 客户端

为每个请求生成 HO-* 签名头, 并解密服务端返回的 AES-256-CBC 密文。

核心模块:
- signature: nonce、东八区时间戳与 SHA-1 签名生成
- crypto_utils: AES-256-CBC/PKCS7 加解密与十六进制编解码
- api_client: SignedApiClient 请求发送与响应解密
- errors: ApiClientError 错误类型
- main: 可选的 FastAPI 调试网关
"""

__version__ = "1.0.0"

from .api_client import (
    ApiClientConfig,
    ResponseEnvelope,
    SignedApiClient,
    send_signed_request,
)
from .errors import ApiClientError, ApiClientErrorKind

__all__ = [
    "ApiClientConfig",
    "ApiClientError",
    "ApiClientErrorKind",
    "ResponseEnvelope",
    "SignedApiClient",
    "send_signed_request",
]
