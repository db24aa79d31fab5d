"""Seed database with demo data."""
from datetime import date, timedelta
import uuid

from calidad.auth import get_password_hash
from calidad.database import SessionLocal
from calidad.models import DefectReport, Organization, ReleaseEntry, User, WorkPlan


def seed():
    """Seed database with demo data."""
    db = SessionLocal()

    try:
        if db.query(Organization).filter(Organization.code == "DEMO").first():
            print("Demo organization already exists, skipping seed")
            return

        org = Organization(
            id=uuid.UUID('00000000-0000-0000-0000-000000000001'),
            name="Fábrica demo",
            code="DEMO",
        )
        db.add(org)
        db.flush()

        users_data = [
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000101'),
                'username': 'admin',
                'password': 'admin123',
                'name': 'Administrador',
                'initials': 'ADM',
                'role': 'admin',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000102'),
                'username': 'supervisor',
                'password': 'supervisor123',
                'name': 'Supervisor de Planta',
                'initials': 'SUP',
                'role': 'manager',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000103'),
                'username': 'inspector',
                'password': 'inspector123',
                'name': 'Inspector de Calidad',
                'initials': 'INS',
                'role': 'inspector',
            },
            {
                'id': uuid.UUID('00000000-0000-0000-0000-000000000104'),
                'username': 'operador',
                'password': 'operador123',
                'name': 'Operador de Línea',
                'initials': 'OPE',
                'role': 'operator',
            },
        ]

        users = []
        for user_data in users_data:
            password = user_data.pop('password')
            user = User(
                org_id=org.id,
                password_hash=get_password_hash(password),
                **user_data
            )
            db.add(user)
            users.append(user)

        db.flush()

        plan = WorkPlan(
            id=uuid.UUID('00000000-0000-0000-0000-000000000301'),
            org_id=org.id,
            area='SILLAS',
            target_qty=100,
            producto='SILLA COMEDOR',
            color='NOGAL',
            pedido='P-1001',
            cliente='Cliente Demo',
            created_by=users[1].id,
        )
        db.add(plan)
        db.flush()

        # Ana releases 40, Luis 35, then 10 of Ana's are reverted by Carlos: 65 released, 35 pending.
        ana = ReleaseEntry(org_id=org.id, plan_id=plan.id, amount=40, actor='Ana', created_by=users[2].id)
        db.add(ana)
        db.flush()
        db.add(ReleaseEntry(org_id=org.id, plan_id=plan.id, amount=35, actor='Luis', created_by=users[2].id))
        db.add(
            ReleaseEntry(
                org_id=org.id,
                plan_id=plan.id,
                amount=-10,
                actor='Carlos',
                reversal_of_id=ana.id,
                created_by=users[1].id,
            )
        )
        plan.ledger_version = 3

        db.add(
            WorkPlan(
                id=uuid.UUID('00000000-0000-0000-0000-000000000302'),
                org_id=org.id,
                area='SALAS',
                target_qty=20,
                producto='SALA ESQUINERA',
                color='GRIS',
                pedido='P-1002',
                cliente='Cliente Demo',
                created_by=users[1].id,
            )
        )

        today = date.today()
        reports_data = [
            {
                'fecha': today - timedelta(days=2),
                'area': 'SILLAS',
                'producto': 'SILLA COMEDOR',
                'pedido': 'P-1001',
                'cliente': 'Cliente Demo',
                'defect_tags': ['LACA MANCHA', 'GRAPA VISIBLE'],
                'descripcion': 'Mancha en respaldo',
            },
            {
                'fecha': today - timedelta(days=1),
                'area': 'SILLAS',
                'producto': 'SILLA COMEDOR',
                'pedido': 'P-1001',
                'cliente': 'Cliente Demo',
                'defect_tags': ['LACA MANCHA'],
            },
            {
                'fecha': today,
                'area': 'SALAS',
                'producto': 'SALA ESQUINERA',
                'pedido': 'P-1002',
                'cliente': 'Cliente Demo',
                'defect_tags': ['TELA SUCIA', 'PATAS FLOJAS'],
            },
        ]
        for report_data in reports_data:
            db.add(DefectReport(org_id=org.id, created_by=users[2].id, **report_data))

        db.commit()
        print("Demo data seeded")
        print("Users: admin/admin123, supervisor/supervisor123, inspector/inspector123, operador/operador123")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
