from __future__ import annotations

from ..extensions import db
from mua_admin.time_utils import to_utc_z


class Client(db.Model):
    """
    A wedding couple booking the vendor.

    Ceremony (akad) and reception (resepsi) dates drive the two calendar
    appointments created alongside the client.
    """
    __tablename__ = "clients"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    bride_name = db.Column(db.String(128), nullable=False)
    groom_name = db.Column(db.String(128), nullable=False)
    primary_phone = db.Column(db.String(32), nullable=False)
    secondary_phone = db.Column(db.String(32), nullable=True)

    bride_address = db.Column(db.Text, nullable=True)
    groom_address = db.Column(db.Text, nullable=True)
    bride_parents = db.Column(db.String(255), nullable=True)
    groom_parents = db.Column(db.String(255), nullable=True)

    ceremony_date = db.Column(db.DateTime(timezone=True), nullable=False)
    ceremony_time = db.Column(db.String(5), nullable=True)  # "HH:MM"
    reception_date = db.Column(db.DateTime(timezone=True), nullable=False)
    reception_time = db.Column(db.String(5), nullable=True)
    event_location = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    orders = db.relationship("Order", back_populates="client", cascade="all, delete-orphan", lazy=True)
    appointments = db.relationship("Appointment", back_populates="client", cascade="all, delete-orphan", lazy=True)

    def to_dict(self, include_appointments: bool = False) -> dict:
        data = {
            "id": self.id,
            "bride_name": self.bride_name,
            "groom_name": self.groom_name,
            "primary_phone": self.primary_phone,
            "secondary_phone": self.secondary_phone,
            "bride_address": self.bride_address,
            "groom_address": self.groom_address,
            "bride_parents": self.bride_parents,
            "groom_parents": self.groom_parents,
            "ceremony_date": to_utc_z(self.ceremony_date),
            "ceremony_time": self.ceremony_time,
            "reception_date": to_utc_z(self.reception_date),
            "reception_time": self.reception_time,
            "event_location": self.event_location,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_appointments:
            data["appointments"] = [
                a.to_dict() for a in sorted(self.appointments, key=lambda a: a.start_time)
            ]
        return data


class Appointment(db.Model):
    """Calendar entry, optionally tied to a client."""
    __tablename__ = "appointments"
    __table_args__ = (
        db.Index("ix_appointments_start_time", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    color = db.Column(db.String(16), nullable=False, default="#d4b896")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client", back_populates="appointments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "color": self.color,
            "client": {
                "id": self.client.id,
                "bride_name": self.client.bride_name,
                "groom_name": self.client.groom_name,
            } if self.client else None,
        }
