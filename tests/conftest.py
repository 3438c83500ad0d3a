"""Pytest 配置和共享 fixtures

提供测试所需的共享 fixtures，支持 pytest 运行。
"""

import pytest

from tests.utils.test_helpers import CountingCounter, create_temp_project


@pytest.fixture
def temp_project():
    """
    提供临时测试项目 fixture

    Usage:
        def test_something(temp_project):
            tool = ReadTool(project_root=temp_project.root)
            ...
    """
    with create_temp_project() as project:
        yield project


@pytest.fixture
def counting_counter():
    """按空白切分计数的确定性计数器"""
    return CountingCounter()


@pytest.fixture
def read_tool(temp_project, counting_counter):
    """ReadTool fixture（budget 模式使用确定性计数器，不访问网络）"""
    from tools.builtin.read_file import ReadTool
    return ReadTool(project_root=temp_project.root, token_counter=counting_counter)
