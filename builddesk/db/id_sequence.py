# builddesk/db/id_sequence.py
from typing import List, Type

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from builddesk.db.enums import IdPrefix
from builddesk.models.id_sequence import IdSequence

ID_WIDTH = 3


def sequence_of(entity_id: str) -> int:
    '''
    取出 id 的数字部分，例如 "PE012" -> 12
    非法格式返回 0
    '''
    digits = "".join(ch for ch in entity_id if ch.isdigit())
    return int(digits) if digits else 0


def max_existing_sequence(db: Session, model: Type, prefix: IdPrefix) -> int:
    '''表中同前缀 id 的最大序号，没有时为 0'''
    prefix_str = prefix.value
    rows = db.execute(
        select(model.id).where(model.id.like(f"{prefix_str}%"))
    ).scalars().all()

    current = 0
    for row_id in rows:
        suffix = row_id[len(prefix_str):]
        if suffix.isdigit():
            current = max(current, int(suffix))
    return current


def ensure_sequence(db: Session, model: Type, prefix: IdPrefix) -> None:
    '''
    序号行不存在时，用表中现有最大序号初始化
    '''
    if db.get(IdSequence, prefix.value) is None:
        db.add(IdSequence(prefix=prefix.value, last_value=max_existing_sequence(db, model, prefix)))
        db.flush()


def next_ids(db: Session, model: Type, prefix: IdPrefix, count: int = 1) -> List[str]:
    '''
    Allocate `count` new ids of the form `<PREFIX><zero-padded-sequence>`.

    规则：
    - 序号来自 id_sequences 表，先 UPDATE 占位再读取，跨项目、跨进程都不会重复
    - UPDATE 持有的行锁（SQLite 为写锁）直到调用方 commit / rollback
    - 序号不补零截断，超过 999 后自然变长
    - 回滚后序号不回收，允许出现空号

    :param db: 数据库 session
    :type db: Session
    :param model: ORM 模型类，必须有字符串主键 id
    :param prefix: id 前缀
    :type prefix: IdPrefix
    :param count: 需要申请的 id 数量
    :type count: int
    :return: 新 id 列表
    :rtype: List[str]
    '''
    if count <= 0:
        return []

    bump = (
        update(IdSequence)
        .where(IdSequence.prefix == prefix.value)
        .values(last_value=IdSequence.last_value + count)
        .execution_options(synchronize_session=False)
    )
    if db.execute(bump).rowcount == 0:
        ensure_sequence(db, model, prefix)
        db.execute(bump)

    last = db.execute(
        select(IdSequence.last_value).where(IdSequence.prefix == prefix.value)
    ).scalar_one()

    return [
        f"{prefix.value}{str(value).zfill(ID_WIDTH)}"
        for value in range(last - count + 1, last + 1)
    ]


def next_id(db: Session, model: Type, prefix: IdPrefix) -> str:
    return next_ids(db, model, prefix, 1)[0]
