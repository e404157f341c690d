# boardgame_server/api/schemas.py

from marshmallow import Schema, fields, validates_schema, post_load, ValidationError, EXCLUDE
from marshmallow.validate import Length, OneOf, Range

from ..game_core.constants import PlayerKind, PieceColor, PieceKind, PickKind, SEATS
from ..game_core.pick import PickEvent

# --- Наши собственные правила валидации ---

def _values(enum_cls):
    return [member.value for member in enum_cls]

# --- Базовая схема ---

class BaseEventSchema(Schema):
    """
    Базовая схема для событий SocketIO: неизвестные поля
    клиента молча отбрасываются.
    """
    class Meta:
        unknown = EXCLUDE

# --- Старт партии ---

class StartGameSchema(BaseEventSchema):
    seat_kinds = fields.List(
        fields.Str(validate=OneOf(_values(PlayerKind), error="Неизвестный тип игрока: {input}.")),
        required=True,
        validate=Length(equal=len(SEATS), error="Нужно ровно {equal} места."),
        error_messages={"required": "Необходимо указать seat_kinds."}
    )

    @post_load
    def to_kinds(self, data, **kwargs):
        data['seat_kinds'] = [PlayerKind(k) for k in data['seat_kinds']]
        return data

# --- Раскладка ---

class PieceSpecSchema(BaseEventSchema):
    id = fields.Int(required=True)
    color = fields.Str(required=True, validate=OneOf(_values(PieceColor)))
    kind = fields.Str(load_default=PieceKind.NORMAL.value, validate=OneOf(_values(PieceKind)))
    owner = fields.Int(load_default=None, allow_none=True, validate=OneOf(list(SEATS)))
    column = fields.Int(load_default=None, allow_none=True)
    row = fields.Int(load_default=None, allow_none=True)

    @validates_schema
    def validate_coords(self, data, **kwargs):
        if (data.get('column') is None) != (data.get('row') is None):
            raise ValidationError("column и row указываются вместе.", field_name='column')


class LayoutSchema(BaseEventSchema):
    columns = fields.Int(required=True, validate=Range(min=1, max=64))
    rows = fields.Int(required=True, validate=Range(min=1, max=64))
    pieces = fields.List(fields.Nested(PieceSpecSchema), required=True)

    @validates_schema
    def validate_unique_ids(self, data, **kwargs):
        ids = [p['id'] for p in data.get('pieces', [])]
        if len(ids) != len(set(ids)):
            raise ValidationError("id фишек должны быть уникальны.", field_name='pieces')


class AssetsLoadedSchema(BaseEventSchema):
    layout = fields.Nested(LayoutSchema, load_default=None, allow_none=True)

# --- Выбор объекта ---

class PickSchema(BaseEventSchema):
    object_kind = fields.Str(
        required=True,
        validate=OneOf(_values(PickKind)),
        error_messages={"required": "Необходимо указать object_kind."}
    )
    column = fields.Int(load_default=None, allow_none=True)
    row = fields.Int(load_default=None, allow_none=True)
    piece_id = fields.Int(load_default=None, allow_none=True)

    @validates_schema
    def validate_target(self, data, **kwargs):
        if data['object_kind'] == PickKind.PIECE.value and data.get('piece_id') is None:
            raise ValidationError("Для фишки нужен piece_id.", field_name='piece_id')
        if data['object_kind'] == PickKind.TILE.value and (data.get('column') is None or data.get('row') is None):
            raise ValidationError("Для клетки нужны column и row.", field_name='column')

    @post_load
    def to_pick(self, data, **kwargs):
        if data['object_kind'] == PickKind.PIECE.value:
            return PickEvent.piece(data['piece_id'])
        return PickEvent.tile(data['column'], data['row'])

# --- Часы и анимации ---

class AnimationDoneSchema(BaseEventSchema):
    signal_id = fields.Str(required=True, validate=Length(min=1))


class TickSchema(BaseEventSchema):
    delta = fields.Float(required=True, validate=Range(min=0.0, max=5.0))
