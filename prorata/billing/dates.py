# -*- coding: utf-8 -*-
"""
Contagem de dias por calendario, ciente de timezone.

Todo o motor conta dias da mesma forma: converte os instantes para o
timezone do customer, trunca para a meia-noite local e subtrai as datas.
Transicoes de horario de verao nao alteram a contagem.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .. import config


def get_zone(name: str = None) -> ZoneInfo:
    """Retorna o ZoneInfo do nome informado (padrao: DEFAULT_TIMEZONE)"""
    return ZoneInfo(name or config.DEFAULT_TIMEZONE)


def as_utc(value) -> datetime:
    """
    Normaliza um instante para datetime aware em UTC.

    Datetimes naive sao tratados como UTC (convencao do banco); datas sao
    tratadas como meia-noite UTC.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(value, tz_name: str = None) -> date:
    """Data de calendario do instante no timezone informado"""
    return as_utc(value).astimezone(get_zone(tz_name)).date()


def local_midnight(day: date, tz_name: str = None) -> datetime:
    """Meia-noite local de `day`, expressa em UTC"""
    return datetime.combine(day, time.min, tzinfo=get_zone(tz_name)).astimezone(timezone.utc)


def day_diff(from_datetime, to_datetime, tz_name: str = None) -> int:
    """
    Dias de calendario entre dois instantes no timezone informado.

    Retorna `data_local(to) - data_local(from)`. Se `to` for anterior a
    `from` o resultado e negativo; quem chama deve garantir a ordem.
    """
    return (local_date(to_datetime, tz_name) - local_date(from_datetime, tz_name)).days


def closing_midnight(value, tz_name: str = None) -> datetime:
    """
    Fecha na meia-noite local seguinte um fim gravado no ultimo segundo do dia.

    Fatias fechadas em 23:59:59 (ou 23:59:59.999999) cobrem o dia inteiro;
    sem isso o dia final nao seria contado. Outros instantes voltam
    inalterados, em UTC.
    """
    moment = as_utc(value)
    next_midnight = local_midnight(local_date(moment, tz_name) + timedelta(days=1), tz_name)
    if next_midnight - moment <= timedelta(seconds=1):
        return next_midnight
    return moment
