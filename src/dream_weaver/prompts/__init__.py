"""提示词模板

模板为同目录下的 .txt 文件，使用 str.format 占位符；
字面量花括号需写成 {{ 和 }}。
"""

from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).parent


@lru_cache
def load_prompt(name: str) -> str:
    """按名称读取模板（不含扩展名）"""
    prompt_file = PROMPTS_DIR / f"{name}.txt"
    if not prompt_file.exists():
        raise FileNotFoundError(f"Prompt template not found: {prompt_file}")
    return prompt_file.read_text(encoding="utf-8").strip()


def render_prompt(name: str, **kwargs) -> str:
    """读取并填充模板"""
    return load_prompt(name).format(**kwargs)
