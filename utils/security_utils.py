"""
Utilitários de Segurança - assinatura de webhooks, comparação de tokens e mascaramento de credenciais
"""

import hashlib
import hmac
import ipaddress
import logging
import os
import re
from typing import Iterable, Optional
from urllib.parse import urlparse

logger = logging.getLogger("AgentBridge")

SIGNATURE_PREFIX = "sha256="
ALLOWED_GATEWAY_SCHEMES = ("http", "https")
BLOCKED_HOST_PREFIXES = ("10.", "172.", "192.168.")
LOCAL_HOSTS = ("localhost", "127.0.0.1")

_URL_CREDENTIALS_PATTERN = re.compile(r"(https?://)[^/@\s]+@")
_AUTH_HEADER_PATTERN = re.compile(r"\b(Bearer|Basic)\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE)


def secure_compare(provided: Optional[str], expected: Optional[str]) -> bool:
    """Comparação em tempo constante; valores ausentes nunca conferem"""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_webhook_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verifica o header X-Webhook-Signature (sha256=<hmac hex>) sobre o corpo bruto
    
    Args:
        body: Corpo da requisição, exatamente como recebido
        signature: Valor do header
        secret: Segredo compartilhado do webhook
        
    Returns:
        True se a assinatura confere
    """
    if not signature:
        return False
    return secure_compare(signature.strip(), compute_signature(body, secret))


def redact_credentials(text: Optional[str], secrets: Iterable[Optional[str]] = ()) -> Optional[str]:
    """
    Remove credenciais de um texto antes de registrá-lo em log
    
    Args:
        text: Texto para mascarar
        secrets: Valores conhecidos a ocultar (tokens, chaves)
        
    Returns:
        Texto com credenciais substituídas por ***
    """
    if not text:
        return text

    masked = _URL_CREDENTIALS_PATTERN.sub(r"\1***@", text)
    masked = _AUTH_HEADER_PATTERN.sub(r"\1 ***", masked)
    for secret in secrets:
        if secret and len(secret) >= 4:
            masked = masked.replace(secret, "***")
    return masked


def is_valid_gateway_url(url: str) -> bool:
    """Aceita apenas http(s); faixas privadas 10./172./192.168. são recusadas, localhost é permitido"""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ALLOWED_GATEWAY_SCHEMES or not parsed.hostname:
        return False

    host = parsed.hostname.lower()
    if host in LOCAL_HOSTS:
        return True
    if host.startswith(BLOCKED_HOST_PREFIXES):
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return True
    return not (address.is_private or address.is_link_local)


def is_safe_directory_path(path: str, base_dir: str) -> bool:
    """
    Verifica se caminho está dentro do diretório base (proteção contra path traversal)
    
    Args:
        path: Caminho para verificar
        base_dir: Diretório base permitido
        
    Returns:
        True se o caminho é seguro, False caso contrário
    """
    try:
        base_path = os.path.realpath(base_dir)
        target_path = os.path.realpath(os.path.join(base_dir, path))
        return os.path.commonpath([base_path]) == os.path.commonpath([base_path, target_path])
    except ValueError as e:
        logger.error(f"Erro ao verificar caminho seguro: {str(e)}")
        return False
