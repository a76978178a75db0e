"""DreamWeaver - 儿童绘本自动生成器"""

__version__ = "0.1.0"
