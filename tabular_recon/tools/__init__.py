from .spark import SparkTool

__all__ = ["SparkTool"]
