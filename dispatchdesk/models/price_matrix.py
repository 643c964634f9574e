from sqlalchemy import BigInteger, Column, Integer, String, UniqueConstraint

from dispatchdesk.database import Base


class PriceMatrixRow(Base):
    __tablename__ = "price_matrix"

    __table_args__ = (
        UniqueConstraint(
            "origin",
            "destination",
            "truck_type",
            "subcontractor",
            name="uq_price_matrix_route_key",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    origin = Column(String, nullable=False)
    destination = Column(String, nullable=False)
    truck_type = Column(String, nullable=False)
    subcontractor = Column(String, nullable=False, index=True)

    base_price_satang = Column(BigInteger, nullable=False, default=0)
    selling_base_price_satang = Column(BigInteger, nullable=False, default=0)

    payment_type = Column(String, nullable=False, default="CREDIT")  # CREDIT|CASH
    credit_days = Column(Integer, nullable=True)
