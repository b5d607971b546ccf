"""
Management command to populate the database with demo data.

Every section is skipped when its table already has rows, so the
command can be run on each deploy.
"""
from datetime import time
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from clinic.models import (
    AppointmentDuration,
    BlogPost,
    Doctor,
    DoctorSchedule,
    Product,
    Specialty,
    Testimonial,
)
from clinic.services.content import get_legal_settings

SPECIALTIES = [
    ('Medicina General', 'Consultas de atención primaria y seguimiento.', 30),
    ('Dermatología', 'Diagnóstico y tratamiento de la piel.', 20),
    ('Pediatría', 'Atención médica para bebés, niños y adolescentes.', 30),
    ('Nutrición', 'Planes de alimentación y control de peso.', 45),
    ('Fisioterapia', 'Rehabilitación y tratamiento del dolor.', 60),
]

DOCTORS = [
    {'name': 'Dra. Laura Pérez', 'email': 'laura.perez@example.com', 'specialties': ['Medicina General'],
     'experience': '15 años', 'license_number': 'TF-10231'},
    {'name': 'Dr. Andrés Hernández', 'email': 'andres.hernandez@example.com', 'specialties': ['Dermatología'],
     'experience': '10 años', 'license_number': 'TF-11877'},
    {'name': 'Dra. Marta Díaz', 'email': 'marta.diaz@example.com', 'specialties': ['Pediatría', 'Nutrición'],
     'experience': '8 años', 'license_number': 'TF-12409'},
]

# (weekday, start, end); Monday is 0.
WEEKLY_HOURS = [(d, time(9, 0), time(14, 0)) for d in range(5)] + [(1, time(16, 0), time(19, 0))]

PRODUCTS = [
    ('Vitaminas Complex', 'Suplementos',
     'Complejo multivitamínico para fortalecer el sistema inmune y mantener una buena salud general.',
     '12.99', 0),
    ('Termómetro Digital', 'Equipos',
     'Termómetro digital de alta precisión con resultados en 10 segundos. Ideal para toda la familia.',
     '8.50', 10),
    ('Crema Hidratante Facial', 'Dermatología',
     'Hidratación profunda para todo tipo de piel. Fórmula no grasa con protección UV.',
     '15.99', 15),
    ('Analgésico Natural', 'Medicamentos',
     'Analgésico de origen natural para aliviar dolores leves y moderados.',
     '7.25', 0),
    ('Tensiómetro Automático', 'Equipos',
     'Monitor de presión arterial con memoria para 120 mediciones. Fácil de usar y transportar.',
     '39.99', 20),
    ('Probióticos Digestivos', 'Suplementos',
     'Fórmula con 10 mil millones de bacterias beneficiosas para mejorar la salud intestinal.',
     '19.50', 5),
]

BLOG_POSTS = [
    ('Cómo prepararse para su consulta médica', 'Salud general',
     'Consejos prácticos para aprovechar al máximo su cita con el médico y asegurar una comunicación efectiva.',
     '<p>Preparar una lista de preguntas, llevar un registro de síntomas y ser honesto con su médico '
     'son clave para una consulta productiva.</p>'),
    ('Vitaminas esenciales para reforzar el sistema inmune', 'Nutrición',
     'Descubra qué vitaminas y minerales son fundamentales para fortalecer sus defensas naturales.',
     '<p>La vitamina C, la vitamina D, el zinc y el selenio juegan un papel crucial en mantener '
     'un sistema inmunológico saludable.</p>'),
    ('Rutina de cuidado facial para pieles sensibles', 'Dermatología',
     'Guía completa para el cuidado diario de pieles sensibles, recomendada por nuestros dermatólogos.',
     '<p>Aprenda qué ingredientes evitar y cuáles son beneficiosos para su tipo de piel.</p>'),
]

TESTIMONIALS = [
    ('Carmen García', 'Cliente habitual',
     'El servicio es excelente. Siempre están dispuestos a resolver mis dudas.', 5),
    ('Juan Martínez', 'Paciente del Centro Médico',
     'La atención en el centro médico es inmejorable. Los médicos son profesionales y cercanos.', 4),
    ('Elena Rodríguez', 'Cliente ocasional',
     'Encontré productos específicos que no había encontrado en otros lugares.', 4),
]

PLACEHOLDER_IMAGE = 'https://images.unsplash.com/photo-1576091160550-2173dba999ef?w=500&h=300'


class Command(BaseCommand):
    help = 'Populate database with demo data'

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Creating demo data...')
        specialties = self.create_specialties()
        self.create_doctors(specialties)
        self.create_products()
        self.create_blog_posts()
        self.create_testimonials()
        get_legal_settings()
        self.stdout.write(self.style.SUCCESS('Demo data ready.'))

    def create_specialties(self):
        result = {}
        for name, description, minutes in SPECIALTIES:
            specialty, created = Specialty.objects.get_or_create(name=name, defaults={'description': description})
            AppointmentDuration.objects.get_or_create(specialty=specialty, defaults={'duration': minutes})
            result[name] = specialty
            if created:
                self.stdout.write(f'Specialty: {name}')
        return result

    def create_doctors(self, specialties):
        if Doctor.objects.exists():
            self.stdout.write('Doctors already present, skipping.')
            return
        for data in DOCTORS:
            data = dict(data)
            names = data.pop('specialties')
            doctor = Doctor.objects.create(**data)
            doctor.specialties.set([specialties[n] for n in names])
            DoctorSchedule.objects.bulk_create([
                DoctorSchedule(doctor=doctor, day_of_week=day, start_time=start, end_time=end)
                for day, start, end in WEEKLY_HOURS
            ])
            self.stdout.write(f'Doctor: {doctor.name}')

    def create_products(self):
        if Product.objects.exists():
            self.stdout.write('Products already present, skipping.')
            return
        Product.objects.bulk_create([
            Product(name=name, category=category, description=description, price=Decimal(price),
                    discount=discount, image_url=PLACEHOLDER_IMAGE, in_stock=True, featured=True)
            for name, category, description, price, discount in PRODUCTS
        ])

    def create_blog_posts(self):
        if BlogPost.objects.exists():
            self.stdout.write('Blog posts already present, skipping.')
            return
        now = timezone.now()
        BlogPost.objects.bulk_create([
            BlogPost(title=title, slug=slugify(title), category=category, excerpt=excerpt,
                     content=content, image_url=PLACEHOLDER_IMAGE, published=True, publish_date=now)
            for title, category, excerpt, content in BLOG_POSTS
        ])

    def create_testimonials(self):
        if Testimonial.objects.exists():
            self.stdout.write('Testimonials already present, skipping.')
            return
        Testimonial.objects.bulk_create([
            Testimonial(name=name, role=role, content=content, rating=rating, approved=True)
            for name, role, content, rating in TESTIMONIALS
        ])
