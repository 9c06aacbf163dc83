"""
입출력 유틸리티 (설정, 이미지, JSON, 벡터 소스)
"""
import json
import urllib.request
from pathlib import Path
from typing import Any, Dict, Union

import cv2
import numpy as np
import yaml

URL_PREFIXES = ('http://', 'https://')


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """YAML 설정 로드 (비어 있으면 빈 dict)"""
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    return data or {}


def save_config(config: Dict[str, Any], path: Union[str, Path]):
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config, f, allow_unicode=True, sort_keys=False)


def save_image(image: np.ndarray, path: Union[str, Path]):
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), image):
        raise IOError(f"Cannot write image: {path}")


def load_json(path: Union[str, Path]) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: Any, path: Union[str, Path]):
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def is_inline_document(source: str) -> bool:
    return source.lstrip().startswith('<')


def load_text_source(source: Union[str, Path], timeout: float = 10.0) -> str:
    """파일 경로, http(s) URL, 또는 문서 문자열 자체를 받아 텍스트 반환"""
    if isinstance(source, Path):
        return source.read_text(encoding='utf-8')
    if is_inline_document(source):
        return source
    if source.startswith(URL_PREFIXES):
        with urllib.request.urlopen(source, timeout=timeout) as resp:
            charset = resp.headers.get_content_charset() or 'utf-8'
            return resp.read().decode(charset)
    return Path(source).read_text(encoding='utf-8')
