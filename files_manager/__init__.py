"""files-manager：带缩略图生成的文件上传与管理服务。"""

__version__ = "0.1.0"
