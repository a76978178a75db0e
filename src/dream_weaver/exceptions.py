"""异常定义

故事文本链路的错误向上传播并使应用进入 ERROR 状态；
插图链路的错误在图像生成层被吸收，替换为占位图。
"""


class DreamWeaverError(Exception):
    """所有业务异常的基类"""


class ConfigurationError(DreamWeaverError):
    """缺少凭据等配置错误，在发起网络请求前抛出"""


class BackendRequestError(DreamWeaverError):
    """后端返回非成功状态或传输失败"""


class GenerationError(DreamWeaverError):
    """故事生成结果不可用"""


class MalformedResponseError(GenerationError):
    """故事JSON无法解析或结构不符"""


class EmptyResultError(GenerationError):
    """后端没有返回内容、页面或图片数据"""


class ExportError(DreamWeaverError):
    """PDF导出失败，不影响已生成的绘本"""


class InvalidTransitionError(DreamWeaverError):
    """非法的状态机转换"""
