"""
入力フェーズパッケージ
分類済み地面メッシュの頂点バッファ取得
"""

from .ground import ArrayGroundSource, FileGroundSource

__all__ = [
    'ArrayGroundSource',
    'FileGroundSource',
]
