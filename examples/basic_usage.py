"""
基础使用示例
演示unifs的基本用法：位置字符串、缓冲读取、gzip外层与事务写入
"""

import logging

import unifs
from unifs.exceptions import TransactionAborted
from unifs.util import setup_logging

logger = logging.getLogger(__name__)


def main():
    """主函数"""
    setup_logging(verbose=False)
    print("=== unifs 基础使用示例 ===\n")

    # 1. 写入并读取文本
    print("1. 写入并读取文本...")
    with unifs.open("memory://demo_dir/test.txt", "w", encoding="utf-8") as f:
        f.write("Hello, unifs! 这是一个测试文件。")
    with unifs.open("memory://demo_dir/test.txt", "r", encoding="utf-8") as f:
        print(f"   ✓ 文件内容: {f.read()}")

    # 2. 元数据与列举
    print("\n2. 获取文件信息...")
    fs, path = unifs.url_to_fs("memory://demo_dir/test.txt")
    stats = fs.info(path)
    print(f"   ✓ 文件路径: {stats.get_name()}")
    print(f"   ✓ 文件大小: {stats.get_size()} bytes")
    print(f"   ✓ 文件类型: {stats.get_type()}")
    for entry in fs.ls("/demo_dir"):
        print(f"   - {entry.basename} ({entry.get_type()})")

    # 3. 随机访问读取
    print("\n3. 随机访问读取...")
    fs.pipe_file("/demo_dir/numbers.bin", bytes(range(100)))
    with fs.open("/demo_dir/numbers.bin", block_size=16) as f:
        f.seek(90)
        print(f"   ✓ 偏移90起的10字节: {list(f.read(10))}")

    # 4. gzip外层
    print("\n4. gzip压缩写入...")
    with unifs.open("gzip::memory://demo_dir/log.gz", "w") as f:
        f.write("compressed line\n")
    print(f"   ✓ 压缩后大小: {fs.size('/demo_dir/log.gz')} bytes")

    # 5. 事务写入
    print("\n5. 事务写入...")
    with fs.transaction() as txn:
        fs.pipe_file("/out/part-0", b"0")
        fs.pipe_file("/out/part-1", b"1")
    print(f"   ✓ 已提交: {txn.committed}")

    try:
        with fs.transaction():
            fs.pipe_file("/out/part-2", b"2")
            raise ValueError("模拟处理失败")
    except TransactionAborted as e:
        print(f"   ✓ 事务已中止，丢弃: {e.discarded}")
    print(f"   ✓ /out/part-2 存在: {fs.exists('/out/part-2')}")

    # 6. 清理
    print("\n6. 清理...")
    fs.delete("/demo_dir", recursive=True)
    fs.delete("/out", recursive=True)
    print("   ✓ 清理完成")

    print("\n=== 示例运行完成 ===")


if __name__ == "__main__":
    main()
