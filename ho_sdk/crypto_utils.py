"""
加密工具模块

提供 AES-256-CBC/PKCS7 加解密上下文与十六进制编解码工具函数。

- 密钥: app_secret 的 UTF-8 字节 (必须为 32 字节)
- IV: iv 的 UTF-8 字节 (必须为 16 字节)
"""

import binascii
from typing import Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ApiClientError, ApiClientErrorKind


# AES-256 密钥长度 (字节)
AES_KEY_SIZE = 32

# AES 分组长度 (字节)
AES_BLOCK_SIZE = 16


def to_bytes(value: Union[str, bytes]) -> bytes:
    """字符串按 UTF-8 编码为字节, 字节原样返回"""
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def decode_hex(text: str) -> bytes:
    """
    严格解码十六进制字符串

    与 bytes.fromhex 不同, 不接受空白字符。

    Args:
        text: 十六进制字符串 (大小写均可)

    Returns:
        解码后的字节

    Raises:
        ApiClientError: DECODE, 长度为奇数或包含非十六进制字符
    """
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ApiClientError(
            ApiClientErrorKind.DECODE,
            f"Invalid hex payload: {e}"
        ) from e


def encode_hex(data: bytes) -> str:
    """字节编码为小写十六进制字符串"""
    return data.hex()


class CipherContext:
    """
    AES-256-CBC/PKCS7 加解密上下文

    构造后不可变, 每次加解密都创建新的 encryptor/decryptor,
    因此同一实例可以被并发调用安全共享。

    Example:
        >>> ctx = CipherContext(b"k" * 32, b"i" * 16)
        >>> ctx.decrypt(ctx.encrypt(b"pong"))
        b'pong'
    """

    def __init__(self, key: bytes, iv: bytes):
        """
        Args:
            key: 32 字节密钥
            iv: 16 字节初始化向量

        Raises:
            ApiClientError: INVALID_CONFIG, 长度不匹配
        """
        if len(key) != AES_KEY_SIZE:
            raise ApiClientError(
                ApiClientErrorKind.INVALID_CONFIG,
                f"AES config error: key must be {AES_KEY_SIZE} bytes, got {len(key)}"
            )
        if len(iv) != AES_BLOCK_SIZE:
            raise ApiClientError(
                ApiClientErrorKind.INVALID_CONFIG,
                f"AES config error: iv must be {AES_BLOCK_SIZE} bytes, got {len(iv)}"
            )
        self._cipher = Cipher(algorithms.AES(key), modes.CBC(iv))

    def encrypt(self, plaintext: bytes) -> bytes:
        """PKCS7 填充后加密"""
        padder = padding.PKCS7(AES_BLOCK_SIZE * 8).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = self._cipher.encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes) -> bytes:
        """
        解密并去除 PKCS7 填充

        Raises:
            ApiClientError: DECRYPTION, 密文长度不是分组整数倍或填充无效
        """
        if not ciphertext or len(ciphertext) % AES_BLOCK_SIZE:
            raise ApiClientError(
                ApiClientErrorKind.DECRYPTION,
                f"Ciphertext length {len(ciphertext)} is not a positive multiple of {AES_BLOCK_SIZE}"
            )
        try:
            decryptor = self._cipher.decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise ApiClientError(
                ApiClientErrorKind.DECRYPTION,
                f"Decryption failed: {e}"
            ) from e


def build_cipher_context(secret: Union[str, bytes], iv: Union[str, bytes]) -> CipherContext:
    """
    从配置中的 secret / iv 构建加解密上下文

    Args:
        secret: 应用密钥 (同时作为签名密钥和 AES 密钥)
        iv: 初始化向量

    Returns:
        CipherContext 实例

    Raises:
        ApiClientError: INVALID_CONFIG, 长度不匹配或包含无法编码为 UTF-8 的字符
    """
    try:
        key_bytes, iv_bytes = to_bytes(secret), to_bytes(iv)
    except UnicodeEncodeError as e:
        raise ApiClientError(
            ApiClientErrorKind.INVALID_CONFIG,
            f"AES config error: secret and iv must be valid UTF-8: {e}"
        ) from e
    return CipherContext(key_bytes, iv_bytes)


def encrypt_to_hex(ctx: CipherContext, plaintext: str) -> str:
    """加密 UTF-8 文本并输出十六进制密文 (与服务端响应格式一致)"""
    return encode_hex(ctx.encrypt(plaintext.encode("utf-8")))


def decrypt_hex(ctx: CipherContext, hex_ciphertext: str) -> str:
    """
    解密十六进制密文并按 UTF-8 解码

    Raises:
        ApiClientError: DECODE / DECRYPTION / ENCODING
    """
    plaintext = ctx.decrypt(decode_hex(hex_ciphertext))
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ApiClientError(
            ApiClientErrorKind.ENCODING,
            f"Decrypted payload is not valid UTF-8: {e}"
        ) from e
