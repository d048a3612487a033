"""
签名加密 API 客户端模块

向远程服务发送带签名的请求, 并解密服务端返回的 AES-256-CBC 密文。

请求流程:
1. 生成 nonce 与东八区毫秒时间戳
2. 请求体规范化为 JSON 字符串 (无请求体时为空字符串)
3. 计算 SHA-1 签名, 放入 HO-* 请求头
4. 请求体以 {"data": <规范 JSON 字符串>} 发送, 无请求体时发送 {}
5. 响应 {"data": "<hex>"} -> 十六进制解码 -> AES 解密 -> UTF-8 文本
"""

import json
import logging
from typing import Any, Optional

from curl_cffi import CurlError
from curl_cffi.requests import AsyncSession
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .crypto_utils import CipherContext, build_cipher_context, decrypt_hex
from .errors import ApiClientError, ApiClientErrorKind
from .signature import SignatureGenerator, SignedHeaders


logger = logging.getLogger(__name__)

# ============================================================
# 配置常量
# ============================================================

# 连接与整体超时 (秒)
DEFAULT_TIMEOUT = 100.0

HTTP_OK = 200


# ============================================================
# Pydantic 模型定义
# ============================================================

class ApiClientConfig(BaseModel):
    """客户端配置 (构造后不可变)"""
    model_config = ConfigDict(frozen=True)

    app_id: str = Field(..., description="应用 ID, 每次请求通过 HO-APP-ID 发送")
    app_secret: str = Field(..., description="应用密钥, 同时用于签名和 AES-256 解密 (32 字节)")
    iv: str = Field(..., description="AES-CBC 初始化向量 (16 字节)")
    base_url: str = Field(..., description="服务地址, 如 https://server.example.com")
    content: str = Field(..., description="路径前缀, 拼接在 base_url 与 uri 之间")

    def __repr__(self) -> str:
        return (
            f"ApiClientConfig(app_id={self.app_id!r}, base_url={self.base_url!r}, "
            f"content={self.content!r})"
        )


class ResponseEnvelope(BaseModel):
    """服务端响应信封"""
    data: str = Field(..., description="十六进制编码的 AES 密文")


# ============================================================
# API 客户端类
# ============================================================

class SignedApiClient:
    """
    签名加密 API 客户端

    客户端只读持有配置与加解密上下文, 可以被多个并发调用共享。
    每次调用独立创建 HTTP 会话, 不做重试。

    使用示例:
        config = ApiClientConfig(
            app_id="your app id",
            app_secret="0123456789abcdef0123456789abcdef",
            iv="0123456789abcdef",
            base_url="https://server.example.com",
            content="/server/common/api",
        )
        client = SignedApiClient(config)
        text = await client.send("GET", "/v1/lol/champion/skin?region=cn", {"key": "value"})
    """

    def __init__(self, config: ApiClientConfig, timeout: float = DEFAULT_TIMEOUT):
        """
        初始化客户端

        Args:
            config: 客户端配置
            timeout: 连接与整体超时 (秒)

        Raises:
            ApiClientError: INVALID_CONFIG, 密钥或 IV 长度不匹配
        """
        self._config = config
        self._cipher: CipherContext = build_cipher_context(config.app_secret, config.iv)
        self._signer = SignatureGenerator(config.app_id, config.app_secret)
        self.timeout = timeout

    @property
    def config(self) -> ApiClientConfig:
        return self._config

    @property
    def signer(self) -> SignatureGenerator:
        return self._signer

    def decrypt(self, hex_ciphertext: str) -> str:
        """解密响应 data 字段 (十六进制 -> AES -> UTF-8)"""
        return decrypt_hex(self._cipher, hex_ciphertext)

    def build_url(self, uri: str) -> str:
        """拼接完整 URL (不做转义)"""
        return f"{self._config.base_url}{self._config.content}{uri}"

    @staticmethod
    def build_payload(signed: SignedHeaders, has_body: bool) -> bytes:
        """
        构建请求体

        data 字段的值与签名使用的规范字符串完全一致。
        """
        envelope = {"data": signed.body_string} if has_body else {}
        return json.dumps(envelope, separators=(',', ':'), ensure_ascii=False).encode("utf-8")

    def _create_session(self) -> AsyncSession:
        """为单次调用创建 HTTP 会话"""
        return AsyncSession(timeout=self.timeout)

    async def send(self, method: str, uri: str, body: Any = None) -> str:
        """
        发送签名请求并返回解密后的文本

        Args:
            method: HTTP 方法, 如 "GET"、"POST"
            uri: 请求路径, 参与签名
            body: 请求体 (可 JSON 序列化的值), None 表示无请求体

        Returns:
            解密后的 UTF-8 文本

        Raises:
            ApiClientError: 各类失败, 见 ApiClientErrorKind
        """
        signed = self._signer.sign(uri, body)
        payload = self.build_payload(signed, body is not None)
        url = self.build_url(uri)

        headers = signed.to_headers()
        headers["Content-Type"] = "application/json"

        logger.debug(f"Sending {method.upper()} {url} (nonce={signed.nonce})")

        try:
            async with self._create_session() as session:
                response = await session.request(
                    method.upper(),
                    url,
                    headers=headers,
                    data=payload
                )
        except CurlError as e:
            raise ApiClientError(
                ApiClientErrorKind.TRANSPORT,
                f"Request to {url} failed: {e}"
            ) from e

        if response.status_code != HTTP_OK:
            raise ApiClientError(
                ApiClientErrorKind.TRANSPORT,
                f"Unexpected response status for {url}",
                status_code=response.status_code
            )

        try:
            envelope = ResponseEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiClientError(
                ApiClientErrorKind.SERIALIZATION,
                f"Invalid response envelope: {e}"
            ) from e

        return self.decrypt(envelope.data)

    async def get(self, uri: str, body: Any = None) -> str:
        """便捷方法: GET 请求"""
        return await self.send("GET", uri, body)

    async def post(self, uri: str, body: Any = None) -> str:
        """便捷方法: POST 请求"""
        return await self.send("POST", uri, body)

    async def send_json(self, method: str, uri: str, body: Any = None) -> Any:
        """
        发送请求并把解密结果解析为 JSON

        Raises:
            ApiClientError: 同 send, 解密文本不是 JSON 时为 SERIALIZATION
        """
        text = await self.send(method, uri, body)
        try:
            return json.loads(text)
        except ValueError as e:
            raise ApiClientError(
                ApiClientErrorKind.SERIALIZATION,
                f"Decrypted payload is not JSON: {e}"
            ) from e


# ============================================================
# 便捷函数
# ============================================================

async def send_signed_request(
    config: ApiClientConfig,
    method: str,
    uri: str,
    body: Optional[Any] = None
) -> str:
    """
    便捷函数: 使用给定配置发送一次请求

    Args:
        config: 客户端配置
        method: HTTP 方法
        uri: 请求路径
        body: 请求体

    Returns:
        解密后的文本
    """
    client = SignedApiClient(config)
    return await client.send(method, uri, body)
