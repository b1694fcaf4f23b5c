"""Generic Thrift decoding for asserting on encoded Jaeger payloads."""

from thrift.Thrift import TType


def read_value(proto, ttype):
    if ttype == TType.STRUCT:
        return read_struct(proto)
    if ttype == TType.LIST:
        etype, size = proto.readListBegin()
        values = [read_value(proto, etype) for _ in range(size)]
        proto.readListEnd()
        return values
    if ttype == TType.I64:
        return proto.readI64()
    if ttype == TType.I32:
        return proto.readI32()
    if ttype == TType.BOOL:
        return proto.readBool()
    if ttype == TType.STRING:
        return proto.readString()
    raise AssertionError(f"unexpected thrift type {ttype}")


def read_struct(proto) -> dict:
    """Read a struct into a ``{field id: value}`` dict."""
    fields = {}
    proto.readStructBegin()
    while True:
        _, ftype, fid = proto.readFieldBegin()
        if ftype == TType.STOP:
            break
        fields[fid] = read_value(proto, ftype)
        proto.readFieldEnd()
    proto.readStructEnd()
    return fields


def tags_of(struct: dict, fid: int) -> dict:
    """Turn a list of Tag structs into ``{key: value}``."""
    return {tag[1]: tag.get(3, tag.get(5)) for tag in struct.get(fid, [])}
