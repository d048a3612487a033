"""
HO SDK 网关服务 - FastAPI 应用主入口

在签名加密客户端之外提供一个本地调试网关, 提供 RESTful API 接口用于:
1. 生成请求签名 (调试服务端签名校验)
2. 解密服务端返回的十六进制密文
3. 代理发送签名请求并返回解密结果

配置通过环境变量读取 (仅网关使用, 客户端本身只接受代码传入的配置):
    HO_APP_ID, HO_APP_SECRET, HO_IV, HO_BASE_URL, HO_CONTENT

使用方法:
    uvicorn ho_sdk.main:app --reload --host 127.0.0.1 --port 8000

网关持有 app_secret, 只应监听本机地址。

API 文档:
    http://localhost:8000/docs (Swagger UI)
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from . import __version__
from .api_client import ApiClientConfig, SignedApiClient
from .errors import ApiClientError, ApiClientErrorKind
from .signature import build_sign_string, get_shanghai_timestamp

# 配置日志
logger = logging.getLogger(__name__)

# 环境变量名 -> 配置字段
ENV_FIELDS = {
    "HO_APP_ID": "app_id",
    "HO_APP_SECRET": "app_secret",
    "HO_IV": "iv",
    "HO_BASE_URL": "base_url",
    "HO_CONTENT": "content",
}

# 允许跨域访问的本机调试页面
LOCAL_ORIGINS = [
    "http://localhost",
    "http://127.0.0.1",
]

# 解密失败统一返回的错误信息, 不区分填充错误与编码错误
DECRYPT_FAILED_DETAIL = "解密失败"

# 上游相关错误 -> 网关状态码
UPSTREAM_STATUS = {
    ApiClientErrorKind.INVALID_CONFIG: 500,
    ApiClientErrorKind.TRANSPORT: 502,
    ApiClientErrorKind.SERIALIZATION: 502,
    ApiClientErrorKind.DECODE: 502,
    ApiClientErrorKind.DECRYPTION: 502,
    ApiClientErrorKind.ENCODING: 502,
}


# ================== Pydantic 模型定义 ==================

class SignatureRequest(BaseModel):
    """生成签名请求模型"""
    uri: str = Field(..., description="请求路径", examples=["/v1/ping"])
    body: Optional[Any] = Field(None, description="请求体, 不提供表示无请求体")
    nonce: Optional[str] = Field(None, description="nonce, 不提供则随机生成")
    timestamp: Optional[int] = Field(None, description="时间戳 (毫秒), 不提供则使用当前东八区时间")


class SignatureResponse(BaseModel):
    """签名响应模型"""
    signature: str = Field(..., description="SHA-1 签名 (40位十六进制)")
    nonce: str = Field(..., description="使用的 nonce")
    timestamp: int = Field(..., description="使用的时间戳")
    body_string: str = Field(..., description="参与签名的规范请求体")
    headers: Dict[str, str] = Field(..., description="完整的签名请求头")


class DecryptRequest(BaseModel):
    """解密请求模型"""
    data: str = Field(..., description="十六进制密文")


class DecryptResponse(BaseModel):
    """解密响应模型"""
    plaintext: str = Field(..., description="解密后的文本")


class ProxyRequest(BaseModel):
    """代理请求模型"""
    method: str = Field("GET", description="HTTP 方法")
    uri: str = Field(..., description="请求路径", examples=["/v1/lol/champion/skin?region=cn"])
    body: Optional[Any] = Field(None, description="请求体")


class ProxyResponse(BaseModel):
    """代理响应模型"""
    data: str = Field(..., description="解密后的响应文本")


class TimeSyncResponse(BaseModel):
    """时间同步响应模型"""
    timestamp: int = Field(..., description="当前东八区毫秒时间戳")


# ================== 配置 ==================

def load_config_from_env() -> Optional[ApiClientConfig]:
    """
    从环境变量读取客户端配置

    Returns:
        配置对象, 任一变量缺失时返回 None
    """
    values = {}
    for env_name, field_name in ENV_FIELDS.items():
        value = os.environ.get(env_name)
        if not value:
            logger.warning(f"Environment variable {env_name} is not set")
            return None
        values[field_name] = value
    return ApiClientConfig(**values)


def get_client(request: Request) -> SignedApiClient:
    """获取已配置的客户端, 未配置时返回 503"""
    client = getattr(request.app.state, "client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="客户端未配置")
    return client


# ================== 生命周期管理 ==================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("Starting HO SDK gateway...")

    config = load_config_from_env()
    if config is not None:
        try:
            app.state.client = SignedApiClient(config)
            logger.info(f"Client configured for {config.base_url}{config.content}")
        except ApiClientError as e:
            logger.error(f"Invalid client config: {e}")
            app.state.client = None
    else:
        app.state.client = None

    yield

    logger.info("Shutting down...")


# ================== FastAPI 应用创建 ==================

app = FastAPI(
    title="HO SDK 网关",
    description="""
## 概述

签名加密 API 客户端的本地调试网关。

## 签名算法

```
HO-SIGNATURE = SHA1(app_id + nonce + timestamp + uri + body + app_secret)
```

## 响应解密

```
data (hex) -> AES-256-CBC/PKCS7 (key=app_secret, iv) -> UTF-8
```
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS 中间件配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=LOCAL_ORIGINS,
    allow_origin_regex=r"http://(localhost|127\.0\.0\.1):\d+",
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)


# ================== API 路由 ==================

@app.get("/", tags=["基础"])
async def root(request: Request):
    """
    根路径 - 服务状态检查
    """
    return {
        "service": "HO SDK Gateway",
        "version": __version__,
        "status": "running",
        "configured": getattr(request.app.state, "client", None) is not None,
        "docs": "/docs"
    }


@app.get("/msec", response_model=TimeSyncResponse, tags=["基础"])
async def get_server_time():
    """
    获取东八区毫秒时间戳

    与签名使用的时间戳口径一致, 可用于核对客户端与服务端的时间差。
    """
    return {"timestamp": get_shanghai_timestamp()}


@app.post(
    "/api/generate-signature",
    response_model=SignatureResponse,
    tags=["签名生成"]
)
async def api_generate_signature(payload: SignatureRequest, request: Request):
    """
    生成请求签名

    ## 参数说明

    - **uri**: 请求路径
    - **body**: 请求体, 按键排序后紧凑序列化
    - **nonce** / **timestamp**: 可选, 便于复现服务端日志中的签名
    """
    client = get_client(request)
    try:
        signed = client.signer.sign(
            payload.uri,
            payload.body,
            nonce=payload.nonce,
            timestamp=payload.timestamp
        )
    except ApiClientError as e:
        raise HTTPException(status_code=400, detail=f"签名生成失败: {e}")

    return {
        "signature": signed.signature,
        "nonce": signed.nonce,
        "timestamp": signed.timestamp,
        "body_string": signed.body_string,
        "headers": signed.to_headers()
    }


@app.get("/api/sign-string", tags=["签名生成"])
async def api_sign_string_preview(
    request: Request,
    uri: str,
    nonce: str,
    timestamp: int,
    body_string: str = ""
):
    """
    签名原文预览 (密钥部分隐藏)

    用于排查字段顺序问题。
    """
    client = get_client(request)
    sign_string = build_sign_string(
        client.config.app_id, nonce, timestamp, uri, body_string, "...secret..."
    )
    return {"sign_string_preview": sign_string}


@app.post("/api/decrypt", response_model=DecryptResponse, tags=["解密"])
async def api_decrypt(payload: DecryptRequest, request: Request):
    """
    解密服务端响应中的 data 字段
    """
    client = get_client(request)
    try:
        plaintext = client.decrypt(payload.data)
    except ApiClientError as e:
        logger.info(f"Decrypt request rejected: {e.kind.value}")
        raise HTTPException(status_code=400, detail=DECRYPT_FAILED_DETAIL)
    return {"plaintext": plaintext}


@app.post("/api/send", response_model=ProxyResponse, tags=["代理"])
async def api_send(payload: ProxyRequest, request: Request):
    """
    代理发送签名请求

    ## 示例

    ```bash
    curl -X POST "http://localhost:8000/api/send" \\
         -H "Content-Type: application/json" \\
         -d '{"method": "GET", "uri": "/v1/ping"}'
    ```
    """
    client = get_client(request)
    try:
        text = await client.send(payload.method, payload.uri, payload.body)
    except ApiClientError as e:
        logger.error(f"Proxied request failed: {e}")
        raise HTTPException(status_code=UPSTREAM_STATUS[e.kind], detail=str(e))
    return {"data": text}


# ================== 启动入口 ==================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ho_sdk.main:app",
        host="127.0.0.1",
        port=28000,
        reload=True
    )
