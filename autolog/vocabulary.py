from __future__ import annotations

CURRENCY_NAMES: dict[str, str] = {
    "USD": "US Dollar",
    "EUR": "Euro",
    "GBP": "British Pound",
    "JPY": "Japanese Yen",
    "HKD": "Hong Kong Dollar",
    "CAD": "Canadian Dollar",
    "AUD": "Australian Dollar",
    "CHF": "Swiss Franc",
    "CNY": "Chinese Yuan",
    "SGD": "Singapore Dollar",
    "NZD": "New Zealand Dollar",
    "INR": "Indian Rupee",
    "KRW": "South Korean Won",
    "MXN": "Mexican Peso",
    "BRL": "Brazilian Real",
    "ZAR": "South African Rand",
    "RUB": "Russian Ruble",
    "SEK": "Swedish Krona",
    "NOK": "Norwegian Krone",
    "DKK": "Danish Krone",
}

CURRENCIES: list[str] = sorted(CURRENCY_NAMES)

DISTANCE_UNITS: list[str] = ["km", "miles"]

VOLUME_UNITS: list[str] = ["liters", "gallons", "gallons (US)", "gallons (UK)"]

TYRE_PRESSURE_UNITS: list[str] = ["bar", "PSI", "kPa"]

PAYMENT_TYPES: list[str] = ["Cash", "Credit Card", "Mobile App", "Other"]

FUEL_CONSUMPTION_UNITS: list[str] = ["L/100km", "km/L", "G/100mi", "km/G", "mi/L"]

FUEL_COMPANIES: list[str] = [
    "Shell",
    "ExxonMobil",
    "BP",
    "Chevron",
    "Total",
    "Esso",
    "Texaco",
    "Mobil",
    "Petron",
    "Caltex",
    "Sinopec",
    "PetroChina",
    "Gazprom",
    "Lukoil",
    "Valero",
    "Repsol",
    "Neste",
    "Circle K",
    "7-Eleven",
    "Other",
]

FUEL_TYPES: list[str] = [
    "Regular Gasoline",
    "Premium Gasoline",
    "Super Premium Gasoline",
    "Diesel",
    "Premium Diesel",
    "Bio Diesel",
    "E85 Ethanol",
    "E10 Ethanol",
    "CNG (Compressed Natural Gas)",
    "LPG (Liquefied Petroleum Gas)",
    "Electric",
    "Hydrogen",
    "Other",
]

EXPENSE_CATEGORIES: list[str] = [
    # Maintenance
    "Regular Service",
    "Oil Change",
    "Tire Replacement",
    "Tire Repair",
    "Tire Rotation",
    "Wheel Alignment",
    "Brake Service",
    "Engine Repair",
    "Transmission Service",
    "Battery Replacement",
    "Air Filter",
    "Spark Plugs",
    "Coolant Service",
    "Exhaust Repair",
    "Suspension Repair",
    "Electrical Repair",
    "Air Conditioning Service",
    # Registration and insurance
    "Vehicle Registration",
    "Inspection Fee",
    "Emissions Test",
    "Road Tax",
    "Insurance Premium",
    "Insurance Deductible",
    "Extended Warranty",
    "Roadside Assistance",
    # Body and glass
    "Accident Repair",
    "Windshield Replacement",
    "Paint Repair",
    "Dent Repair",
    "Body Work",
    # Cleaning
    "Car Wash",
    "Detailing",
    "Waxing",
    "Ceramic Coating",
    # Accessories
    "Car Accessories",
    "Audio System",
    "Dash Cam",
    "Window Tinting",
    "Floor Mats",
    # Usage
    "Parking Fees",
    "Tolls",
    "Congestion Charge",
    "Car Rental",
    "Traffic Fine",
    "Parking Ticket",
    # Financing
    "Vehicle Purchase",
    "Loan Payment",
    "Lease Payment",
    "Interest Payment",
    # Charging
    "Electric Charging",
    "Home Charging Station",
    "Public Charging",
    # Services
    "Mechanic Labor",
    "Diagnostic Fee",
    "Towing Service",
    "Storage Fees",
    "Emergency Repair",
    "Miscellaneous",
    "Other",
]

INCOME_CATEGORIES: list[str] = [
    "Ride Sharing",
    "Delivery Services",
    "Taxi Services",
    "Car Rental",
    "Vehicle Sale",
    "Insurance Claim",
    "Fuel Reimbursement",
    "Mileage Reimbursement",
    "Business Use",
    "Freelance Driving",
    "Other",
]

VEHICLE_TYPE_KEYS: dict[str, str] = {
    "vehicleTypeCar": "Car/Truck",
    "vehicleTypeMotorcycle": "Motorcycle",
    "vehicleTypeHeavyTruck": "Heavy Truck",
    "vehicleTypeAtv": "ATV & UTV",
    "vehicleTypeSnowmobile": "Snowmobile",
    "vehicleTypeWatercraft": "Personal Watercraft",
    "vehicleTypeOther": "Other",
}

VEHICLE_TYPES: list[str] = list(VEHICLE_TYPE_KEYS.values())

VEHICLE_BRANDS: dict[str, list[str]] = {
    "Car/Truck": [
        "Audi", "BMW", "BYD", "Chevrolet", "Ford", "Honda", "Hyundai", "Kia",
        "Lexus", "Mazda", "Mercedes-Benz", "Mitsubishi", "Nissan", "Porsche",
        "Subaru", "Suzuki", "Tesla", "Toyota", "Volkswagen", "Volvo",
    ],
    "Motorcycle": [
        "Aprilia", "BMW", "Ducati", "Harley-Davidson", "Honda", "Kawasaki",
        "KTM", "Royal Enfield", "Suzuki", "Triumph", "Vespa", "Yamaha",
    ],
    "Heavy Truck": [
        "DAF", "Freightliner", "Hino", "Isuzu", "Iveco", "Kenworth", "Mack",
        "MAN", "Peterbilt", "Scania", "Volvo",
    ],
    "ATV & UTV": ["Arctic Cat", "Can-Am", "CFMOTO", "Honda", "Kawasaki", "Polaris", "Yamaha"],
    "Snowmobile": ["Arctic Cat", "BRP", "Lynx", "Polaris", "Ski-Doo", "Yamaha"],
    "Personal Watercraft": ["Kawasaki", "Sea-Doo", "Yamaha"],
    "Other": [],
}


class VehicleType:
    values = set(VEHICLE_TYPES)

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip()
        if normalized in VEHICLE_TYPE_KEYS:
            return VEHICLE_TYPE_KEYS[normalized]
        if normalized not in cls.values:
            raise ValueError("Invalid vehicle type.")
        return normalized


class DistanceUnit:
    values = set(DISTANCE_UNITS)

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized == "mi":
            normalized = "miles"
        if normalized not in cls.values:
            raise ValueError("Invalid distance unit.")
        return normalized


def brands_for(vehicle_type: str) -> list[str]:
    return list(VEHICLE_BRANDS.get(vehicle_type, []))


def as_options() -> dict[str, object]:
    return {
        "currencies": CURRENCIES,
        "distance_units": DISTANCE_UNITS,
        "volume_units": VOLUME_UNITS,
        "tyre_pressure_units": TYRE_PRESSURE_UNITS,
        "payment_types": PAYMENT_TYPES,
        "fuel_consumption_units": FUEL_CONSUMPTION_UNITS,
        "fuel_companies": FUEL_COMPANIES,
        "fuel_types": FUEL_TYPES,
        "expense_categories": EXPENSE_CATEGORIES,
        "income_categories": INCOME_CATEGORIES,
        "vehicle_types": VEHICLE_TYPES,
        "vehicle_brands": VEHICLE_BRANDS,
    }
