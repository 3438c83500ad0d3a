"""读取引擎与 Read 工具测试

运行方式：
    python -m pytest tests/ -v
    python tests/run_all_tests.py --quick    # 仅纯函数单元测试
"""
