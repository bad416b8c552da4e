import json
import logging

import etcd3


class Etcd():
    """
    etcd3 的简单封装，值以 JSON 保存

    mod_revision 作为对象的 resourceVersion，create / replace 通过事务实现条件写入
    """

    def __init__(self, host, port):
        self.logger = logging.getLogger(__name__)
        self.etcd = etcd3.client(host=host, port=port)
        self.logger.info("Etcd Init at %s:%s", host, port)

    def get_prefix(self, prefix):
        """
        前缀查找，返回 (值, mod_revision) 的列表
        场景：查看某个 namespace 的所有 HPA
        """
        return [
            (json.loads(v), meta.mod_revision)
            for v, meta in self.etcd.get_prefix(prefix)
            if v
        ]

    def get(self, key):
        """
        返回 (值, mod_revision)，不存在时返回 (None, None)
        """
        val, meta = self.etcd.get(key)
        if not val:
            return None, None
        return json.loads(val), meta.mod_revision

    def _put_and_read(self, key, val, compare):
        succeeded, responses = self.etcd.transaction(
            compare=compare,
            success=[
                self.etcd.transactions.put(key, json.dumps(val)),
                self.etcd.transactions.get(key),
            ],
            failure=[],
        )
        if not succeeded:
            return None
        _, meta = responses[1][0]
        return meta.mod_revision

    def create(self, key, val):
        """
        仅在 key 不存在时写入，成功返回新的 mod_revision，已存在返回 None
        """
        return self._put_and_read(key, val, [self.etcd.transactions.version(key) == 0])

    def replace(self, key, val, mod_revision):
        """
        仅在 key 的 mod_revision 未变化时写入，成功返回新的 mod_revision，冲突返回 None
        """
        return self._put_and_read(
            key, val, [self.etcd.transactions.mod(key) == int(mod_revision)]
        )

    def delete(self, key):
        return self.etcd.delete(key)
